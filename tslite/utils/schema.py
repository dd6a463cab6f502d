"""Pydantic models for TSLite data structures and their binary codecs."""

from __future__ import annotations

import calendar
import struct
from datetime import MAXYEAR, MINYEAR, datetime, timedelta, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from tslite.errors import DecodeError, OffsetError
from tslite.storage.format import (
    HEADER_SIZE,
    MAX_U8,
    MAX_U16,
    MAX_U32,
    MAX_U64,
    RECORD_FORMAT,
    RECORD_SIZE,
    RECORDS_NUMBER_FORMAT,
    TIMESTAMP_FORMAT,
    TIMESTAMP_SIZE,
)


def _require(data: bytes, size: int, what: str) -> None:
    if len(data) < size:
        raise DecodeError(f"Cannot decode {what}: expected {size} bytes, got {len(data)}.")


class Timestamp(BaseModel):
    """Date and time stored in 7 octets.

    There is no timezone awareness, everything is UTC. Field widths are
    checked on construction but calendar validity is not, so a timestamp
    decoded from a damaged file can still be represented and inspected
    with `is_valid()`.
    """

    model_config = ConfigDict(frozen=True)

    year: int = Field(ge=0, le=MAX_U16)
    month: int = Field(ge=0, le=MAX_U8)
    day: int = Field(ge=0, le=MAX_U8)
    hour: int = Field(default=0, ge=0, le=MAX_U8)
    minute: int = Field(default=0, ge=0, le=MAX_U8)
    second: int = Field(default=0, ge=0, le=MAX_U8)

    @classmethod
    def from_datetime(cls, dt: datetime) -> Timestamp:
        """Build a timestamp from a datetime, dropping sub-second precision.

        Naive datetimes are taken as UTC.
        """
        if dt.tzinfo is not None:
            dt = dt.astimezone(timezone.utc)
        return cls(
            year=dt.year,
            month=dt.month,
            day=dt.day,
            hour=dt.hour,
            minute=dt.minute,
            second=dt.second,
        )

    @classmethod
    def now(cls) -> Timestamp:
        return cls.from_datetime(datetime.now(timezone.utc))

    def to_datetime(self) -> datetime:
        """Convert to an aware UTC datetime.

        Raises:
            OffsetError: if the timestamp is not a valid calendar date.
        """
        try:
            return datetime(
                self.year,
                self.month,
                self.day,
                self.hour,
                self.minute,
                self.second,
                tzinfo=timezone.utc,
            )
        except ValueError as e:
            raise OffsetError(f"{self} is not a valid date: {e}") from e

    def is_valid(self) -> bool:
        """Check that the fields describe an existing date and time.

        Years outside 1..9999 cannot be converted to a datetime and are
        reported as invalid.
        """
        if not (MINYEAR <= self.year <= MAXYEAR and 1 <= self.month <= 12):
            return False
        _, days_in_month = calendar.monthrange(self.year, self.month)
        return (
            1 <= self.day <= days_in_month
            and self.hour < 24
            and self.minute < 60
            and self.second < 60
        )

    def seconds_between(self, other: Timestamp) -> int:
        """Signed number of seconds from self to other."""
        try:
            delta = other.to_datetime() - self.to_datetime()
        except OffsetError as e:
            raise OffsetError(f"Cannot compute an offset with an invalid date: {e}") from e
        return int(delta.total_seconds())

    def offset(self, other: Timestamp) -> int:
        """Number of whole seconds from self to a later timestamp.

        Raises:
            OffsetError: if `other` precedes self or lies more than
                2**32 - 1 seconds after it.
        """
        seconds = self.seconds_between(other)
        if seconds < 0:
            raise OffsetError(f"{other} precedes {self} by {-seconds} seconds.")
        if seconds > MAX_U32:
            raise OffsetError(f"{other} is too far after {self} to fit in 32 bits.")
        return seconds

    def add_seconds(self, seconds: int) -> Timestamp:
        base = self.to_datetime()
        try:
            return Timestamp.from_datetime(base + timedelta(seconds=seconds))
        except OverflowError as e:
            raise OffsetError(f"{self} plus {seconds} seconds is out of range.") from e

    def pack(self) -> bytes:
        return struct.pack(
            TIMESTAMP_FORMAT,
            self.year,
            self.month,
            self.day,
            self.hour,
            self.minute,
            self.second,
        )

    @classmethod
    def unpack(cls, data: bytes) -> Timestamp:
        _require(data, TIMESTAMP_SIZE, "timestamp")
        year, month, day, hour, minute, second = struct.unpack(
            TIMESTAMP_FORMAT, data[:TIMESTAMP_SIZE]
        )
        return cls(year=year, month=month, day=day, hour=hour, minute=minute, second=second)

    def _key(self) -> tuple[int, ...]:
        return (self.year, self.month, self.day, self.hour, self.minute, self.second)

    def __lt__(self, other: Any) -> bool:
        if not isinstance(other, Timestamp):
            return NotImplemented
        return self._key() < other._key()

    def __le__(self, other: Any) -> bool:
        if not isinstance(other, Timestamp):
            return NotImplemented
        return self._key() <= other._key()

    def __gt__(self, other: Any) -> bool:
        if not isinstance(other, Timestamp):
            return NotImplemented
        return self._key() > other._key()

    def __ge__(self, other: Any) -> bool:
        if not isinstance(other, Timestamp):
            return NotImplemented
        return self._key() >= other._key()

    def __str__(self) -> str:
        return (
            f"{self.year:04d}-{self.month:02d}-{self.day:02d}T"
            f"{self.hour:02d}:{self.minute:02d}:{self.second:02d}Z"
        )


class RecordInfo(BaseModel):
    """One entry of the database.

    `time_offset` is the number of seconds since the origin date of the file
    holding the record. Records compare by `time_offset` only.
    """

    model_config = ConfigDict(frozen=True)

    time_offset: int = Field(ge=0, le=MAX_U32)
    value: int = Field(ge=0, le=MAX_U8)

    def pack(self) -> bytes:
        return struct.pack(RECORD_FORMAT, self.time_offset, self.value)

    @classmethod
    def unpack(cls, data: bytes) -> RecordInfo:
        _require(data, RECORD_SIZE, "record")
        time_offset, value = struct.unpack(RECORD_FORMAT, data[:RECORD_SIZE])
        return cls(time_offset=time_offset, value=value)

    @staticmethod
    def sort_key(record: RecordInfo) -> int:
        return record.time_offset

    def __lt__(self, other: Any) -> bool:
        if not isinstance(other, RecordInfo):
            return NotImplemented
        return self.time_offset < other.time_offset

    def __le__(self, other: Any) -> bool:
        if not isinstance(other, RecordInfo):
            return NotImplemented
        return self.time_offset <= other.time_offset

    def __gt__(self, other: Any) -> bool:
        if not isinstance(other, RecordInfo):
            return NotImplemented
        return self.time_offset > other.time_offset

    def __ge__(self, other: Any) -> bool:
        if not isinstance(other, RecordInfo):
            return NotImplemented
        return self.time_offset >= other.time_offset


class DbHeader(BaseModel):
    """Header of a database file.

    `origin_date` is time zero for every record. The file must not contain
    a record older than it.
    """

    model_config = ConfigDict(frozen=True)

    origin_date: Timestamp
    records_number: int = Field(default=0, ge=0, le=MAX_U64)

    def pack(self) -> bytes:
        return self.origin_date.pack() + struct.pack(RECORDS_NUMBER_FORMAT, self.records_number)

    @classmethod
    def unpack(cls, data: bytes) -> DbHeader:
        _require(data, HEADER_SIZE, "header")
        (records_number,) = struct.unpack(
            RECORDS_NUMBER_FORMAT, data[TIMESTAMP_SIZE:HEADER_SIZE]
        )
        return cls(origin_date=Timestamp.unpack(data), records_number=records_number)


class IssueKind(str, Enum):
    """Kinds of problem an integrity scan can find."""

    UNORDERED_RECORD = "unordered_record"
    HEADER_CORRUPTED = "header_corrupted"
    ORIGIN_DATE_INVALID = "origin_date_invalid"
    RECORD_CORRUPTED = "record_corrupted"
    MISMATCH_RECORD_AMOUNT = "mismatch_record_amount"
    NONE = "none"


_ISSUE_DESCRIPTIONS = {
    IssueKind.UNORDERED_RECORD: "records are not in chronological order",
    IssueKind.HEADER_CORRUPTED: "header cannot be read",
    IssueKind.ORIGIN_DATE_INVALID: "origin date is not a valid date",
    IssueKind.RECORD_CORRUPTED: "record cannot be read",
    IssueKind.MISMATCH_RECORD_AMOUNT: "header record count does not match the file size",
    IssueKind.NONE: "no issue found",
}


class DbIssue(BaseModel):
    """Result of an integrity scan. `index` is only set for corrupted records."""

    model_config = ConfigDict(frozen=True)

    kind: IssueKind
    index: int | None = None

    @property
    def description(self) -> str:
        text = _ISSUE_DESCRIPTIONS[self.kind]
        if self.index is not None:
            text = f"{text} (index {self.index})"
        return text

    def __bool__(self) -> bool:
        return self.kind is not IssueKind.NONE

    def __str__(self) -> str:
        return self.description
