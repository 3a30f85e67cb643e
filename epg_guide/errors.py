"""
Error taxonomy for the guide core

Structural failures (network, decompression, malformed documents) are raised to
the caller. Storage failures are raised by durable layers and swallowed by the
guide store.
"""


class GuideError(Exception):
    """Base class for all guide errors"""
    pass


class NetworkError(GuideError):
    """Raised when a guide fetch fails or is cancelled"""

    def __init__(self, message: str, *, status_code: int | None = None, cancelled: bool = False):
        super().__init__(message)
        self.status_code = status_code
        self.cancelled = cancelled


class DecodeError(GuideError):
    """Raised when compressed guide data cannot be decompressed"""
    pass


class ParseError(GuideError):
    """Raised when a guide document is structurally invalid"""
    pass


class StorageError(GuideError):
    """Raised by durable layers when a read or write fails"""
    pass
