"""npub <-> raw public key conversion (NIP-19)."""

from bech32 import bech32_decode, bech32_encode, convertbits

NPUB_PREFIX = "npub"
KEY_LENGTH = 32


class DecodeError(ValueError):
    """Raised when an identifier is not a well-formed npub."""


def decode_npub(npub: str) -> str:
    """Decode an npub identifier to its lowercase hex public key.

    Raises:
        DecodeError: If the string is not a valid 32-byte npub
    """
    hrp, data = bech32_decode(npub)
    if hrp is None or data is None:
        raise DecodeError(f"Invalid bech32 string: {npub!r}")
    if hrp != NPUB_PREFIX:
        raise DecodeError(f"Expected '{NPUB_PREFIX}' prefix, got {hrp!r}")

    raw = convertbits(data, 5, 8, False)
    if raw is None or len(raw) != KEY_LENGTH:
        raise DecodeError(f"npub does not carry a {KEY_LENGTH}-byte key: {npub!r}")
    return bytes(raw).hex()


def encode_npub(pubkey_hex: str) -> str:
    """Encode a hex public key as an npub identifier.

    Raises:
        ValueError: If the input is not a 32-byte hex string
    """
    try:
        raw = bytes.fromhex(pubkey_hex)
    except ValueError as e:
        raise ValueError(f"Public key is not hex: {pubkey_hex!r}") from e
    if len(raw) != KEY_LENGTH:
        raise ValueError(f"Public key must be {KEY_LENGTH} bytes: {pubkey_hex!r}")

    data = convertbits(raw, 8, 5)
    if data is None:  # pragma: no cover
        raise ValueError(f"Could not convert public key: {pubkey_hex!r}")
    return bech32_encode(NPUB_PREFIX, data)
