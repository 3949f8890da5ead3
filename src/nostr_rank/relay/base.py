"""Abstract relay gateway interface."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from nostr_rank.schemas.event import Event, EventFilter


class RelayError(Exception):
    """Raised when no relay could answer a query."""


class RelayGateway(ABC):
    """Request/response view over one or more Nostr relays."""

    @abstractmethod
    async def fetch_latest(self, event_filter: EventFilter, limit: int) -> list[Event]:
        """Return up to ``limit`` matching events, newest first."""
        pass

    @abstractmethod
    def fetch_stream(self, event_filter: EventFilter) -> AsyncIterator[Event]:
        """Lazily yield every matching event within the filter's time range.

        The stream is finite and cannot be restarted.
        """
        pass

    async def close(self) -> None:
        """Release any held connections."""
        return None
