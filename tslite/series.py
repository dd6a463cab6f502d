"""Series — read and navigate a TSLite database.

Usage:
    from tslite import Series

    s = Series("boiler.tsl")

    print(s)                          # Summary
    print(len(s))                     # Number of records
    print(s[10])                      # RecordInfo at index 10
    print(s[-5:])                     # Last five records
    print(s.timestamp_of(s[10]))      # Absolute time of a record
    print(s.values())                 # numpy array of values
    print(s.between(start, end))      # Records in a time range
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime
from pathlib import Path
from typing import Any, overload

import numpy as np

from tslite.errors import OffsetError
from tslite.storage.physical import PhysicalDB
from tslite.utils.schema import DbHeader, RecordInfo, Timestamp


class Series:
    """Read-only view over a .tsl file.

    Records are read from disk on access. Time range queries assume the
    file is chronologically ordered; run `diagnose(path, repair=True)` first
    if it might not be.

    Args:
        path: Path to an existing .tsl file.
    """

    def __init__(self, path: str | Path) -> None:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Database not found: {path}")
        self._db = PhysicalDB.open_or_create(path)

    def close(self) -> None:
        """Close the underlying file."""
        self._db.close()

    def __enter__(self) -> Series:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    # --- Properties ---

    @property
    def path(self) -> Path:
        return self._db.path

    @property
    def header(self) -> DbHeader:
        return self._db.header

    @property
    def origin_date(self) -> Timestamp:
        return self._db.origin_date

    @property
    def num_records(self) -> int:
        return self._db.records_number

    # --- Data Access ---

    def timestamp_of(self, record: RecordInfo) -> Timestamp:
        """Absolute time of a record of this database.

        Raises:
            OffsetError: if the origin date is not a valid date.
        """
        return self.origin_date.add_seconds(record.time_offset)

    def time_text(self, record: RecordInfo, unknown: str = "?") -> str:
        """Absolute time of a record as text, or `unknown` when it cannot be computed."""
        try:
            return str(self.timestamp_of(record))
        except OffsetError:
            return unknown

    def offsets(self) -> np.ndarray:
        """All time offsets, as a uint32 array."""
        return np.fromiter(
            (r.time_offset for r in self._db.iter_records()),
            dtype=np.uint32,
            count=self.num_records,
        )

    def values(self) -> np.ndarray:
        """All values, as a uint8 array."""
        return np.fromiter(
            (r.value for r in self._db.iter_records()),
            dtype=np.uint8,
            count=self.num_records,
        )

    def between(
        self, start: Timestamp | datetime, end: Timestamp | datetime
    ) -> list[RecordInfo]:
        """Records with `start <= time < end`."""
        lo = self._offset_bound(start)
        hi = self._offset_bound(end)
        if hi <= lo:
            return []

        offsets = self.offsets().astype(np.int64)
        first = int(np.searchsorted(offsets, lo, side="left"))
        last = int(np.searchsorted(offsets, hi, side="left"))
        return list(self._db.iter_records(first, last))

    def _offset_bound(self, when: Timestamp | datetime) -> int:
        """Signed offset of `when`, clamped to the range records can have."""
        if isinstance(when, datetime):
            when = Timestamp.from_datetime(when)
        return max(self.origin_date.seconds_between(when), 0)

    @overload
    def __getitem__(self, key: int) -> RecordInfo: ...

    @overload
    def __getitem__(self, key: slice) -> list[RecordInfo]: ...

    def __getitem__(self, key: int | slice) -> RecordInfo | list[RecordInfo]:
        """Index or slice the series.

        series[i] → record at index i
        series[start:end] → list of records over the range
        """
        if isinstance(key, int):
            if key < 0:
                key = self.num_records + key
            return self._db.read_record(key)
        elif isinstance(key, slice):
            start, end, step = key.indices(self.num_records)
            return [self._db.read_record(i) for i in range(start, end, step)]
        else:
            raise TypeError(f"Invalid index type: {type(key)}. Use int or slice.")

    def __iter__(self) -> Iterator[RecordInfo]:
        return self._db.iter_records()

    # --- Display ---

    def summary(self) -> str:
        """Generate a human-readable summary string."""
        lines = []
        lines.append(f"Database: {self.path}")
        lines.append(f"Origin: {self.origin_date}")
        lines.append(f"Records: {self.num_records}")

        if self.num_records > 0:
            first = self[0]
            last = self[-1]
            lines.append(f"First: {self.time_text(first)} = {first.value}")
            lines.append(f"Last: {self.time_text(last)} = {last.value}")

            values = self.values()
            lines.append(
                f"Values: min={int(values.min())}, max={int(values.max())}, "
                f"mean={float(values.mean()):.2f}"
            )

        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"Series(path='{self.path}', origin={self.origin_date}, "
            f"records={self.num_records})"
        )

    def __str__(self) -> str:
        return self.summary()

    def __len__(self) -> int:
        return self.num_records
