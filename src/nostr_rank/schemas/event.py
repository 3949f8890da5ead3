"""Nostr event and subscription filter models (NIP-01)."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

KIND_METADATA = 0
KIND_TEXT_NOTE = 1
KIND_CONTACT_LIST = 3

PARTICIPANT_TAG = "p"


class Event(BaseModel):
    """A signed event as delivered by a relay.

    Signatures are carried but not verified.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str = ""
    pubkey: str
    created_at: int
    kind: int
    tags: list[list[str]] = Field(default_factory=list)
    content: str = ""
    sig: str = ""

    def tag_values(self, discriminator: str) -> list[str]:
        """Return the first value of every tag with the given name."""
        return [
            tag[1] for tag in self.tags if len(tag) >= 2 and tag[0] == discriminator
        ]

    def followed_pubkeys(self) -> list[str]:
        """Participant references declared by a contact-list event."""
        return self.tag_values(PARTICIPANT_TAG)


class EventFilter(BaseModel):
    """Subscription filter: kinds, authors and an optional time range."""

    model_config = ConfigDict(extra="forbid")

    kinds: list[int] = Field(default_factory=list)
    authors: list[str] = Field(default_factory=list)
    since: int | None = None
    until: int | None = None

    def to_wire(self, limit: int | None = None) -> dict[str, Any]:
        """Serialize to the JSON filter object sent in a REQ message."""
        wire: dict[str, Any] = {}
        if self.kinds:
            wire["kinds"] = list(self.kinds)
        if self.authors:
            wire["authors"] = list(self.authors)
        if self.since is not None:
            wire["since"] = self.since
        if self.until is not None:
            wire["until"] = self.until
        if limit is not None:
            wire["limit"] = limit
        return wire
