"""nostr-rank - PageRank influence scores for Nostr participants."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("nostr-rank")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "unknown"
