"""MessageCard wire format.

Receivers parse these field names, so they never change between versions.
Optional fields that are unset are omitted rather than sent as null.
"""

from __future__ import annotations

import json
from typing import Any

from cardhook.card.models import Action, Card, Section

CONTENT_TYPE = "application/json"


def _section_to_dict(section: Section) -> dict[str, Any]:
    data: dict[str, Any] = {"title": section.title}
    if section.subtitle is not None:
        data["activitySubtitle"] = section.subtitle
    if section.text is not None:
        data["text"] = section.text
    data["markdown"] = True
    data["facts"] = [{"name": fact.name, "value": fact.value} for fact in section.facts]
    return data


def _action_to_dict(action: Action) -> dict[str, Any]:
    return {
        "@context": "http://schema.org",
        "@type": "ViewAction",
        "name": action.name,
        "target": list(action.targets),
    }


def card_to_dict(card: Card) -> dict[str, Any]:
    data: dict[str, Any] = {
        "@type": "MessageCard",
        "@context": "https://schema.org/extensions",
        "title": card.title,
        "summary": card.summary,
    }
    if card.theme_color is not None:
        data["themeColor"] = card.theme_color
    data["sections"] = [_section_to_dict(s) for s in card.sections]
    if card.actions:
        data["potentialAction"] = [_action_to_dict(a) for a in card.actions]
    return data


def encode_card(card: Card) -> bytes:
    return json.dumps(card_to_dict(card), indent=2, ensure_ascii=False).encode("utf-8")
