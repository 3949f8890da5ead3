"""Relay access for Nostr events."""

from nostr_rank.relay.base import RelayError, RelayGateway
from nostr_rank.relay.websocket_gateway import WebSocketRelayGateway

__all__ = ["RelayError", "RelayGateway", "WebSocketRelayGateway"]
