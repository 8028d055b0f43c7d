"""Notification cards: models, builder and wire format."""

from cardhook.card.models import Action, Card, Fact, Section
from cardhook.card.builder import CardBuilder, expand_custom_messages
from cardhook.card.wire import card_to_dict, encode_card

__all__ = [
    "Action",
    "Card",
    "CardBuilder",
    "Fact",
    "Section",
    "card_to_dict",
    "encode_card",
    "expand_custom_messages",
]
