from __future__ import annotations


class DexIndexerError(Exception):
    """Base class for all indexer errors."""


class ConfigurationError(DexIndexerError):
    """Required configuration is missing or invalid. Fatal at startup."""


class MalformedFrameError(DexIndexerError):
    """A stream frame is not JSON or lacks the expected envelope fields."""


class StreamTransportError(DexIndexerError):
    """The underlying stream connection failed (refused, reset, abnormal close)."""


class PoolNotFoundError(DexIndexerError):
    pass
