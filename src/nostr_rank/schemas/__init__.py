"""Pydantic models for Nostr wire data."""

from nostr_rank.schemas.event import (
    KIND_CONTACT_LIST,
    KIND_METADATA,
    KIND_TEXT_NOTE,
    Event,
    EventFilter,
)

__all__ = [
    "KIND_CONTACT_LIST",
    "KIND_METADATA",
    "KIND_TEXT_NOTE",
    "Event",
    "EventFilter",
]
