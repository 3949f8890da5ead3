"""WebSocket relay gateway speaking the NIP-01 subscription protocol."""

import asyncio
import json
import logging
import secrets
from collections.abc import AsyncIterator, Sequence
from typing import Any

import websockets
from pydantic import ValidationError

from nostr_rank.relay.base import RelayError, RelayGateway
from nostr_rank.schemas.event import Event, EventFilter

logger = logging.getLogger(__name__)


def _dedupe_key(event: Event) -> str:
    """Identity of an event across relays."""
    if event.id:
        return event.id
    return f"{event.pubkey}:{event.kind}:{event.created_at}:{event.content}"


def _newest_first(events: list[Event]) -> list[Event]:
    return sorted(events, key=lambda e: e.created_at, reverse=True)


def _single_timestamp(events: list[Event]) -> int | None:
    """The shared ``created_at`` when every event has the same one."""
    timestamps = {event.created_at for event in events}
    return timestamps.pop() if len(timestamps) == 1 else None


class WebSocketRelayGateway(RelayGateway):
    """Queries every configured relay and merges their answers.

    Each subscription completes on the first of EOSE, CLOSED or the
    subscription timeout. The timeout is one budget covering both the
    connection attempt and the wait for EOSE. Events gathered before a
    timeout are kept.
    """

    def __init__(
        self,
        relays: Sequence[str],
        subscription_timeout: float = 5.0,
        page_size: int = 500,
        close_timeout: float = 1.0,
    ) -> None:
        if not relays:
            raise ValueError("At least one relay URL is required")
        self._relays = list(relays)
        self._subscription_timeout = subscription_timeout
        self._page_size = page_size
        self._close_timeout = close_timeout

    @property
    def relays(self) -> list[str]:
        return list(self._relays)

    def _connect(self, url: str) -> Any:
        """Open a websocket connection (async context manager)."""
        return websockets.connect(
            url,
            open_timeout=self._subscription_timeout,
            close_timeout=self._close_timeout,
        )

    async def fetch_latest(self, event_filter: EventFilter, limit: int) -> list[Event]:
        events = await self._query_all_relays(event_filter.to_wire(limit))
        return events[:limit]

    async def fetch_stream(self, event_filter: EventFilter) -> AsyncIterator[Event]:
        """Page backwards through time using ``until`` until no new events.

        A relay answers at most ``page_size`` events per page. When a full
        page holds a single second that was already streamed, paging steps
        past that second; events of that second beyond the page size are
        not reachable through ``until`` and are skipped.
        """
        seen: set[str] = set()
        until = event_filter.until

        while True:
            page_filter = event_filter.model_copy(update={"until": until})
            page = await self._query_all_relays(page_filter.to_wire(self._page_size))

            fresh = [event for event in page if _dedupe_key(event) not in seen]
            if not fresh:
                stuck_at = _single_timestamp(page)
                if len(page) < self._page_size or stuck_at is None:
                    return
                until = stuck_at - 1
                logger.debug("Page at %d already streamed, stepping back", stuck_at)
                continue

            for event in fresh:
                seen.add(_dedupe_key(event))
                yield event

            oldest = min(event.created_at for event in fresh)
            if event_filter.since is not None and oldest <= event_filter.since:
                return
            # Inclusive bound; events sharing the oldest second are filtered by seen
            until = oldest

    async def _query_all_relays(self, wire_filter: dict[str, Any]) -> list[Event]:
        """Run one subscription per relay concurrently and merge results."""
        results = await asyncio.gather(
            *(self._query_relay(url, wire_filter) for url in self._relays),
            return_exceptions=True,
        )

        merged: dict[str, Event] = {}
        failures = 0
        for url, result in zip(self._relays, results, strict=True):
            if isinstance(result, BaseException):
                failures += 1
                logger.warning("Relay %s query failed: %s", url, result)
                continue
            for event in result:
                merged.setdefault(_dedupe_key(event), event)

        if failures == len(self._relays):
            raise RelayError(f"All {failures} relay(s) failed for filter {wire_filter}")

        return _newest_first(list(merged.values()))

    async def _query_relay(self, url: str, wire_filter: dict[str, Any]) -> list[Event]:
        """Subscribe on one relay and collect events until completion."""
        subscription_id = secrets.token_hex(8)
        events: list[Event] = []
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._subscription_timeout

        async with self._connect(url) as ws:
            await ws.send(json.dumps(["REQ", subscription_id, wire_filter]))
            try:
                await asyncio.wait_for(
                    self._collect(ws, url, subscription_id, events),
                    timeout=max(deadline - loop.time(), 0.0),
                )
            except TimeoutError:
                logger.debug(
                    "Relay %s: no EOSE within %.1fs, keeping %d event(s)",
                    url,
                    self._subscription_timeout,
                    len(events),
                )

            try:
                await ws.send(json.dumps(["CLOSE", subscription_id]))
            except websockets.ConnectionClosed:
                logger.debug("Relay %s closed before CLOSE was sent", url)

        return events

    async def _collect(
        self, ws: Any, url: str, subscription_id: str, events: list[Event]
    ) -> None:
        """Append EVENT payloads to ``events`` until EOSE for our subscription."""
        while True:
            raw = await ws.recv()
            try:
                message = json.loads(raw)
            except json.JSONDecodeError:
                logger.debug("Relay %s sent non-JSON frame", url)
                continue

            if not isinstance(message, list) or not message:
                continue

            message_type = message[0]
            if message_type == "NOTICE":
                logger.info("Relay %s notice: %s", url, message[1:])
                continue

            if len(message) < 2 or message[1] != subscription_id:
                continue

            if message_type == "EVENT" and len(message) >= 3:
                try:
                    events.append(Event.model_validate(message[2]))
                except ValidationError as e:
                    logger.warning("Relay %s sent malformed event: %s", url, e)
            elif message_type == "EOSE":
                return
            elif message_type == "CLOSED":
                reason = message[2] if len(message) > 2 else ""
                raise RelayError(f"Relay {url} closed subscription: {reason}")
