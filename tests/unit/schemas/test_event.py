"""Tests for event and filter models."""

import pytest
from pydantic import ValidationError

from nostr_rank.schemas.event import KIND_CONTACT_LIST, Event, EventFilter


class TestEvent:
    """Test the Event model."""

    def test_followed_pubkeys_in_declaration_order(self) -> None:
        event = Event(
            pubkey="a" * 64,
            created_at=1,
            kind=KIND_CONTACT_LIST,
            tags=[["p", "b"], ["e", "x"], ["p", "c", "wss://relay"], ["p", "b"]],
        )

        assert event.followed_pubkeys() == ["b", "c", "b"]

    def test_short_tags_are_ignored(self) -> None:
        event = Event(pubkey="a", created_at=1, kind=3, tags=[["p"], []])

        assert event.followed_pubkeys() == []

    def test_unknown_fields_are_ignored(self) -> None:
        event = Event.model_validate(
            {"pubkey": "a", "created_at": 1, "kind": 1, "extra": True}
        )

        assert event.kind == 1
        assert event.content == ""

    def test_missing_required_field(self) -> None:
        with pytest.raises(ValidationError):
            Event.model_validate({"pubkey": "a", "kind": 1})


class TestEventFilter:
    """Test EventFilter wire serialization."""

    def test_to_wire_omits_empty_fields(self) -> None:
        assert EventFilter(kinds=[0]).to_wire() == {"kinds": [0]}

    def test_to_wire_with_everything(self) -> None:
        event_filter = EventFilter(kinds=[3], authors=["a"], since=10, until=20)

        assert event_filter.to_wire(limit=1) == {
            "kinds": [3],
            "authors": ["a"],
            "since": 10,
            "until": 20,
            "limit": 1,
        }

    def test_rejects_unknown_fields(self) -> None:
        with pytest.raises(ValidationError):
            EventFilter.model_validate({"kinds": [1], "ids": ["x"]})
