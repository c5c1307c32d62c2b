"""
Exception types for book.

Single-record operations (lookup, decode) raise these directly. Bulk
operations (search, import) catch MalformedRecord per line and keep going.
"""
from typing import Optional


class BookError(Exception):
    """Base exception for book errors."""
    pass


class NotFound(BookError):
    """Raised when a lookup reaches end of stream without a matching key."""

    def __init__(self, key: str):
        super().__init__(f"Bookmark not found: {key}")
        self.key = key


class MalformedRecord(BookError):
    """Raised when a line cannot be decoded into a bookmark."""

    def __init__(self, line: str, reason: str = "missing target field"):
        preview = line if len(line) <= 60 else line[:57] + "..."
        super().__init__(f"Malformed record ({reason}): {preview!r}")
        self.line = line
        self.reason = reason


class StreamFault(BookError):
    """Raised when reading or writing the backing stream fails."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class UsageError(BookError):
    """Raised when command line input does not form a valid command."""
    pass
