"""Tests for WebSocketRelayGateway using scripted in-memory sockets."""

import asyncio
import json
from collections.abc import Callable
from typing import Any
from unittest.mock import patch

import pytest
import websockets

from nostr_rank.relay.base import RelayError
from nostr_rank.relay.websocket_gateway import WebSocketRelayGateway
from nostr_rank.schemas.event import KIND_TEXT_NOTE, Event, EventFilter
from tests.fakes import make_event, make_pubkey

Script = Callable[[str, dict[str, Any]], list[str]]


class FakeWebSocket:
    """Answers each REQ with the frames produced by ``script``."""

    def __init__(
        self,
        script: Script,
        fail_on_close: bool = False,
        connect_delay: float = 0.0,
    ) -> None:
        self.script = script
        self.fail_on_close = fail_on_close
        self.connect_delay = connect_delay
        self.sent: list[list[Any]] = []
        self._frames: asyncio.Queue[str] = asyncio.Queue()

    async def __aenter__(self) -> "FakeWebSocket":
        if self.connect_delay:
            await asyncio.sleep(self.connect_delay)
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        return None

    async def send(self, raw: str) -> None:
        message = json.loads(raw)
        self.sent.append(message)
        if message[0] == "REQ":
            for frame in self.script(message[1], message[2]):
                self._frames.put_nowait(frame)
        elif message[0] == "CLOSE" and self.fail_on_close:
            raise websockets.ConnectionClosed(None, None)

    async def recv(self) -> str:
        return await self._frames.get()


def _event_frame(sub_id: str, event: Event) -> str:
    return json.dumps(["EVENT", sub_id, event.model_dump()])


def _serve(*events: Event, eose: bool = True) -> Script:
    """Script answering with ``events`` matching the filter's until/limit."""

    def script(sub_id: str, wire: dict[str, Any]) -> list[str]:
        until = wire.get("until")
        matching = [e for e in events if until is None or e.created_at <= until]
        matching.sort(key=lambda e: e.created_at, reverse=True)
        matching = matching[: wire.get("limit", len(matching))]
        frames = [_event_frame(sub_id, event) for event in matching]
        if eose:
            frames.append(json.dumps(["EOSE", sub_id]))
        return frames

    return script


def _note(created_at: int, n: int = 1) -> Event:
    return make_event(make_pubkey(n), KIND_TEXT_NOTE, created_at)


class TestWebSocketRelayGatewayInit:
    """Test construction."""

    def test_requires_relays(self) -> None:
        with pytest.raises(ValueError, match="relay"):
            WebSocketRelayGateway([])

    def test_relays_property(self) -> None:
        gateway = WebSocketRelayGateway(["wss://a", "wss://b"])

        assert gateway.relays == ["wss://a", "wss://b"]


class TestFetchLatest:
    """Test fetch_latest."""

    @pytest.mark.asyncio
    async def test_sends_req_and_close(self) -> None:
        gateway = WebSocketRelayGateway(["wss://relay"])
        socket = FakeWebSocket(_serve(_note(100), _note(200, n=2)))
        event_filter = EventFilter(kinds=[KIND_TEXT_NOTE])

        with patch.object(gateway, "_connect", return_value=socket):
            events = await gateway.fetch_latest(event_filter, limit=5)

        assert [e.created_at for e in events] == [200, 100]
        req, close = socket.sent
        assert req[0] == "REQ"
        assert req[2] == {"kinds": [KIND_TEXT_NOTE], "limit": 5}
        assert close == ["CLOSE", req[1]]

    @pytest.mark.asyncio
    async def test_merges_and_dedupes_relays(self) -> None:
        shared, only_b = _note(100), _note(300, n=2)
        sockets = {
            "wss://a": FakeWebSocket(_serve(shared)),
            "wss://b": FakeWebSocket(_serve(shared, only_b)),
        }
        gateway = WebSocketRelayGateway(list(sockets))

        with patch.object(gateway, "_connect", side_effect=sockets.__getitem__):
            events = await gateway.fetch_latest(EventFilter(), limit=10)

        assert events == [only_b, shared]

    @pytest.mark.asyncio
    async def test_truncates_to_limit(self) -> None:
        sockets = {
            "wss://a": FakeWebSocket(_serve(_note(100))),
            "wss://b": FakeWebSocket(_serve(_note(200, n=2))),
        }
        gateway = WebSocketRelayGateway(list(sockets))

        with patch.object(gateway, "_connect", side_effect=sockets.__getitem__):
            events = await gateway.fetch_latest(EventFilter(), limit=1)

        assert [e.created_at for e in events] == [200]

    @pytest.mark.asyncio
    async def test_one_failing_relay_is_tolerated(self) -> None:
        good = FakeWebSocket(_serve(_note(100)))

        def connect(url: str) -> FakeWebSocket:
            if url == "wss://down":
                raise OSError("connection refused")
            return good

        gateway = WebSocketRelayGateway(["wss://down", "wss://up"])
        with patch.object(gateway, "_connect", side_effect=connect):
            events = await gateway.fetch_latest(EventFilter(), limit=10)

        assert len(events) == 1

    @pytest.mark.asyncio
    async def test_all_relays_failing_raises(self) -> None:
        gateway = WebSocketRelayGateway(["wss://down"])

        with patch.object(gateway, "_connect", side_effect=OSError("refused")):
            with pytest.raises(RelayError, match="failed"):
                await gateway.fetch_latest(EventFilter(), limit=1)

    @pytest.mark.asyncio
    async def test_closed_subscription_counts_as_failure(self) -> None:
        def script(sub_id: str, wire: dict[str, Any]) -> list[str]:
            return [json.dumps(["CLOSED", sub_id, "rate-limited"])]

        gateway = WebSocketRelayGateway(["wss://relay"])
        with patch.object(gateway, "_connect", return_value=FakeWebSocket(script)):
            with pytest.raises(RelayError):
                await gateway.fetch_latest(EventFilter(), limit=1)

    @pytest.mark.asyncio
    async def test_timeout_keeps_partial_events(self) -> None:
        gateway = WebSocketRelayGateway(["wss://relay"], subscription_timeout=0.05)
        socket = FakeWebSocket(_serve(_note(100), eose=False))

        with patch.object(gateway, "_connect", return_value=socket):
            events = await gateway.fetch_latest(EventFilter(), limit=10)

        assert [e.created_at for e in events] == [100]

    @pytest.mark.asyncio
    async def test_slow_connect_shares_the_subscription_budget(self) -> None:
        gateway = WebSocketRelayGateway(["wss://relay"], subscription_timeout=0.4)
        socket = FakeWebSocket(_serve(_note(100), eose=False), connect_delay=0.3)
        loop = asyncio.get_running_loop()

        started = loop.time()
        with patch.object(gateway, "_connect", return_value=socket):
            events = await gateway.fetch_latest(EventFilter(), limit=10)
        elapsed = loop.time() - started

        assert [e.created_at for e in events] == [100]
        assert elapsed < 0.6

    @pytest.mark.asyncio
    async def test_skips_noise_frames(self) -> None:
        note = _note(100)

        def script(sub_id: str, wire: dict[str, Any]) -> list[str]:
            return [
                "not json",
                json.dumps({"unexpected": "object"}),
                json.dumps(["NOTICE", "slow down"]),
                json.dumps(["EVENT", "someone-else", note.model_dump()]),
                json.dumps(["EVENT", sub_id, {"kind": "bogus"}]),
                _event_frame(sub_id, note),
                json.dumps(["EOSE", sub_id]),
            ]

        gateway = WebSocketRelayGateway(["wss://relay"])
        with patch.object(gateway, "_connect", return_value=FakeWebSocket(script)):
            events = await gateway.fetch_latest(EventFilter(), limit=10)

        assert events == [note]

    @pytest.mark.asyncio
    async def test_connection_closed_before_close_message(self) -> None:
        gateway = WebSocketRelayGateway(["wss://relay"])
        socket = FakeWebSocket(_serve(_note(100)), fail_on_close=True)

        with patch.object(gateway, "_connect", return_value=socket):
            events = await gateway.fetch_latest(EventFilter(), limit=10)

        assert len(events) == 1


class TestFetchStream:
    """Test paginated streaming."""

    @pytest.mark.asyncio
    async def test_pages_backwards_until_exhausted(self) -> None:
        notes = [_note(300, n=1), _note(200, n=2), _note(100, n=3)]
        gateway = WebSocketRelayGateway(["wss://relay"], page_size=2)
        script = _serve(*notes)

        with patch.object(
            gateway, "_connect", side_effect=lambda url: FakeWebSocket(script)
        ) as connect:
            streamed = [event async for event in gateway.fetch_stream(EventFilter())]

        assert [e.created_at for e in streamed] == [300, 200, 100]
        assert connect.call_count == 3

    @pytest.mark.asyncio
    async def test_stops_at_since(self) -> None:
        notes = [_note(300, n=1), _note(200, n=2)]
        gateway = WebSocketRelayGateway(["wss://relay"], page_size=10)
        script = _serve(*notes)

        with patch.object(
            gateway, "_connect", side_effect=lambda url: FakeWebSocket(script)
        ) as connect:
            streamed = [
                event async for event in gateway.fetch_stream(EventFilter(since=250))
            ]

        # the scripted relay ignores since; the gateway still stops paging
        assert [e.created_at for e in streamed] == [300, 200]
        assert connect.call_count == 1

    @pytest.mark.asyncio
    async def test_steps_past_a_full_page_of_one_second(self) -> None:
        burst = [_note(300, n=n) for n in (1, 2, 3)]
        older = _note(200, n=4)
        gateway = WebSocketRelayGateway(["wss://relay"], page_size=2)
        script = _serve(*burst, older)

        with patch.object(
            gateway, "_connect", side_effect=lambda url: FakeWebSocket(script)
        ) as connect:
            streamed = [event async for event in gateway.fetch_stream(EventFilter())]

        # two of the three events at 300 fit a page; the third is unreachable
        assert [e.created_at for e in streamed] == [300, 300, 200]
        assert streamed[-1] == older
        assert connect.call_count == 4

