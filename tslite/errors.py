"""Exception types raised by TSLite."""

from __future__ import annotations


class TSLiteError(Exception):
    """Base class for all TSLite errors."""


class StorageIOError(TSLiteError, OSError):
    """The database file could not be opened, read, written or synced.

    Short reads are reported with this error too, since they mean the file
    is truncated or corrupted.
    """


class IndexOutOfBound(TSLiteError, IndexError):
    """The requested record slot does not exist in the file."""

    def __init__(self, index: int) -> None:
        super().__init__(f"Record index {index} is out of bound.")
        self.index = index


class DecodeError(TSLiteError, ValueError):
    """Not enough bytes to decode a value."""


class OffsetError(TSLiteError, ValueError):
    """A time offset would be negative or would not fit in 32 bits."""


class UnorderedRecordError(TSLiteError, ValueError):
    """A strict append was given a record older than the last stored one."""
