"""Participant identifier encoding."""

from nostr_rank.identity.codec import DecodeError, decode_npub, encode_npub

__all__ = ["DecodeError", "decode_npub", "encode_npub"]
