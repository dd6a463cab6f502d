"""Recorder — append timestamped values to a TSLite database.

Usage:
    from tslite import Recorder

    rec = Recorder("boiler.tsl")
    rec.start()

    while running:
        rec.record(read_sensor())           # timestamped with the current time

    rec.close()

Or as a context manager:

    with Recorder("boiler.tsl", origin=datetime(2024, 1, 1, tzinfo=timezone.utc)) as rec:
        for when, value in samples:
            rec.record(value, at=when)
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any

from tslite.storage.format import FILE_EXTENSION, MAX_U8
from tslite.storage.physical import PhysicalDB
from tslite.utils.schema import RecordInfo, Timestamp


class Recorder:
    """Records single-octet values with their time into a .tsl file.

    The database is opened, or created with the given origin date, on
    `start()`. Times are stored as offsets from the origin of the file, so
    a value cannot be recorded before it.

    Args:
        path: Database file. A `.tsl` suffix is added if the path has none.
        origin: Origin date used if the file has to be created. Defaults to now.
        strict: Reject values older than the last recorded one.
    """

    def __init__(
        self,
        path: str | Path,
        origin: Timestamp | datetime | None = None,
        strict: bool = False,
    ) -> None:
        self._path = Path(path)
        if not self._path.suffix:
            self._path = self._path.with_suffix(FILE_EXTENSION)

        self._origin = origin
        self._strict = strict
        self._db: PhysicalDB | None = None
        self._recorded = 0

    def start(self) -> None:
        """Open the database file, creating it if needed."""
        if self._db is not None:
            raise RuntimeError("Recording already started.")
        self._db = PhysicalDB.open_or_create(self._path, self._origin)

    def record(self, value: int, at: Timestamp | datetime | None = None) -> RecordInfo:
        """Record one value.

        Args:
            value: Value to store, 0 to 255.
            at: Time of the value. Defaults to the current time.

        Returns:
            The record written to the file.

        Raises:
            OffsetError: if `at` precedes the origin date of the database.
        """
        if self._db is None:
            self.start()
        assert self._db is not None

        if not 0 <= value <= MAX_U8:
            raise ValueError(f"Value must fit in one octet (0-255), got {value}.")

        if at is None:
            when = Timestamp.now()
        elif isinstance(at, datetime):
            when = Timestamp.from_datetime(at)
        else:
            when = at

        record = RecordInfo(time_offset=self._db.origin_date.offset(when), value=value)
        self._db.append_record(record, strict=self._strict)
        self._recorded += 1
        return record

    def close(self) -> None:
        """Sync and close the database file."""
        if self._db is not None:
            self._db.close()

    @property
    def num_records(self) -> int:
        """Number of records in the database, including those from earlier sessions."""
        if self._db is None:
            return 0
        return self._db.records_number

    @property
    def recorded(self) -> int:
        """Number of values recorded through this recorder."""
        return self._recorded

    @property
    def origin_date(self) -> Timestamp | None:
        if self._db is None:
            return None
        return self._db.origin_date

    @property
    def path(self) -> Path:
        return self._path

    # Context manager support
    def __enter__(self) -> Recorder:
        self.start()
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        status = "idle" if self._db is None else "recording"
        return f"Recorder(path='{self._path}', records={self.num_records}, status={status})"
