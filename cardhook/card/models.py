"""Notification card data models."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Fact:
    name: str
    value: str


@dataclass(frozen=True)
class Section:
    title: str
    facts: tuple[Fact, ...] = ()
    subtitle: str | None = None
    text: str | None = None


@dataclass(frozen=True)
class Action:
    """A link the receiver renders as a button."""

    name: str
    targets: tuple[str, ...]


@dataclass(frozen=True)
class Card:
    title: str
    summary: str
    sections: tuple[Section, ...] = ()
    theme_color: str | None = None
    actions: tuple[Action, ...] = ()
