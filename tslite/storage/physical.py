"""Direct-on-file storage engine for .tsl databases.

Every operation reads or writes the database file immediately, there is
no in-memory buffering. Records have a fixed size, so record `n` always
lives at `HEADER_SIZE + RECORD_SIZE * n`.

Records are expected to be appended in chronological order, but this is
not enforced unless `strict=True` is passed. Use `check_db_file()` to find
problems and `reorder_record()` to sort a scrambled file.
"""

from __future__ import annotations

import logging
import os
import struct
import threading
from collections.abc import Iterator
from datetime import datetime
from pathlib import Path
from typing import IO, Any

from tslite.errors import DecodeError, IndexOutOfBound, StorageIOError, UnorderedRecordError
from tslite.storage.format import (
    HEADER_SIZE,
    MAX_U8,
    MAX_U64,
    RECORD_SIZE,
    RECORDS_NUMBER_FORMAT,
    RECORDS_NUMBER_POSITION,
    VALUE_POSITION,
    record_position,
    slots_in,
)
from tslite.utils.schema import DbHeader, DbIssue, IssueKind, RecordInfo, Timestamp

logger = logging.getLogger(__name__)


def _as_timestamp(origin: Timestamp | datetime | None) -> Timestamp:
    if origin is None:
        return Timestamp.now()
    if isinstance(origin, datetime):
        return Timestamp.from_datetime(origin)
    return origin


class PhysicalDB:
    """A time-series database stored in a single file.

    Use `create()` or `open_or_create()` rather than the constructor. The
    file handle is opened lazily by the first operation that needs it and
    reopened transparently after `close()`.

    The header read at open time is cached in `header`. It is kept in sync
    with the writes made through this object, but not with external
    changes; call `read_header()` for the on-disk value.
    """

    def __init__(self, path: str | Path, header: DbHeader, file: IO[bytes] | None = None) -> None:
        self.path = Path(path)
        self.header = header
        self._file = file
        self._lock = threading.RLock()

    # --- Lifecycle ---

    @classmethod
    def create(
        cls, path: str | Path, origin: Timestamp | datetime | None = None
    ) -> PhysicalDB:
        """Create a new, empty database file.

        Any existing file at `path` is overwritten without warning.

        Args:
            path: Location of the database file.
            origin: Origin date of the database. Defaults to the current UTC time.
        """
        path = Path(path)
        header = DbHeader(origin_date=_as_timestamp(origin), records_number=0)
        try:
            with open(path, "wb") as f:
                f.write(header.pack())
        except OSError as e:
            raise StorageIOError(f"Could not create {path}: {e}") from e

        logger.info("Created database %s with origin %s", path, header.origin_date)
        return cls(path, header)

    @classmethod
    def open_or_create(
        cls, path: str | Path, origin: Timestamp | datetime | None = None
    ) -> PhysicalDB:
        """Open an existing database file, or create it if it does not exist.

        When the file exists `origin` is ignored. Only the size of the header
        is checked here; use `check_db_file()` for a full integrity scan.
        """
        path = Path(path)
        if not path.exists():
            return cls.create(path, origin)

        try:
            f = open(path, "r+b", buffering=0)
        except OSError as e:
            raise StorageIOError(f"Could not open {path}: {e}") from e

        try:
            data = f.read(HEADER_SIZE)
        except OSError as e:
            f.close()
            raise StorageIOError(f"Could not read header of {path}: {e}") from e

        if len(data) < HEADER_SIZE:
            f.close()
            raise StorageIOError("DB file header is corrupted.")

        header = DbHeader.unpack(data)
        logger.info("Opened database %s (%d records)", path, header.records_number)
        return cls(path, header, f)

    def open(self) -> None:
        """Open the database file in read/write mode. Does nothing if already open."""
        with self._lock:
            if self._file is not None:
                return
            try:
                self._file = open(self.path, "r+b", buffering=0)
            except OSError as e:
                raise StorageIOError(f"Could not open {self.path}: {e}") from e
            logger.debug("Opened file handle for %s", self.path)

    def close(self) -> None:
        """Sync all pending writes to disk and close the file."""
        with self._lock:
            if self._file is None:
                return
            try:
                self._sync()
            finally:
                self._file.close()
                self._file = None
            logger.info("Closed database %s", self.path)

    @property
    def is_open(self) -> bool:
        return self._file is not None

    def __enter__(self) -> PhysicalDB:
        self.open()
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    # --- Low-level helpers ---

    def _ensure_open(self) -> IO[bytes]:
        if self._file is None:
            self.open()
        assert self._file is not None
        return self._file

    def _sync(self) -> None:
        """Make previous writes durable."""
        assert self._file is not None
        try:
            self._file.flush()
            os.fsync(self._file.fileno())
        except OSError as e:
            raise StorageIOError(f"Could not sync {self.path}: {e}") from e

    def _read_at(self, position: int, size: int) -> bytes:
        f = self._ensure_open()
        try:
            f.seek(position)
            return f.read(size)
        except OSError as e:
            raise StorageIOError(f"Could not read {self.path}: {e}") from e

    def _write_at(self, position: int, data: bytes) -> None:
        f = self._ensure_open()
        try:
            f.seek(position)
            f.write(data)
        except OSError as e:
            raise StorageIOError(f"Could not write {self.path}: {e}") from e

    def _file_size(self) -> int:
        f = self._ensure_open()
        try:
            return os.fstat(f.fileno()).st_size
        except OSError as e:
            raise StorageIOError(f"Could not stat {self.path}: {e}") from e

    def _check_record_index(self, index: int) -> None:
        if index < 0 or record_position(index + 1) > self._file_size():
            raise IndexOutOfBound(index)

    # --- Header ---

    @property
    def origin_date(self) -> Timestamp:
        return self.header.origin_date

    @property
    def records_number(self) -> int:
        return self.header.records_number

    def read_header(self) -> DbHeader:
        """Read the header from the file. Does not update the cached header."""
        with self._lock:
            data = self._read_at(0, HEADER_SIZE)
            try:
                return DbHeader.unpack(data)
            except DecodeError as e:
                raise StorageIOError("Could not read header: not enough octets.") from e

    def update_record_number(self, delta: int) -> None:
        """Add `delta` to the record count, on disk and in the cached header."""
        with self._lock:
            records_number = self.header.records_number + delta
            if not 0 <= records_number <= MAX_U64:
                raise ValueError(
                    f"Record count must stay within 0..{MAX_U64}, got {records_number}."
                )
            self._write_at(
                RECORDS_NUMBER_POSITION, struct.pack(RECORDS_NUMBER_FORMAT, records_number)
            )
            self._sync()
            self.header = self.header.model_copy(update={"records_number": records_number})

    # --- Records ---

    def physical_record_count(self) -> int:
        """Number of complete record slots present in the file."""
        with self._lock:
            return slots_in(self._file_size())

    def read_record(self, index: int) -> RecordInfo:
        """Read the record at `index`.

        Raises:
            IndexOutOfBound: if the record slot does not fully exist in the file.
            StorageIOError: if the record cannot be read.
        """
        with self._lock:
            self._check_record_index(index)
            data = self._read_at(record_position(index), RECORD_SIZE)
            try:
                return RecordInfo.unpack(data)
            except DecodeError as e:
                raise StorageIOError("Could not read record: not enough octets.") from e

    def iter_records(self, start: int = 0, stop: int | None = None) -> Iterator[RecordInfo]:
        """Yield records `start` to `stop` (exclusive, default: all declared records)."""
        if stop is None:
            stop = self.records_number
        for index in range(start, stop):
            yield self.read_record(index)

    def append_record(self, record: RecordInfo, *, strict: bool = False) -> None:
        """Append a record at the end of the file.

        The record is expected to be the most recent one, but by default
        this is not checked: an out-of-order append is only reported later
        by `check_db_file()`.

        Args:
            record: Record to append.
            strict: Reject the record with `UnorderedRecordError` if it is
                older than the last stored record.
        """
        with self._lock:
            if strict and self.records_number > 0:
                last = self.read_record(self.records_number - 1)
                if record.time_offset < last.time_offset:
                    raise UnorderedRecordError(
                        f"Record offset {record.time_offset} precedes the last "
                        f"stored offset {last.time_offset}."
                    )

            f = self._ensure_open()
            try:
                f.seek(0, os.SEEK_END)
                f.write(record.pack())
            except OSError as e:
                raise StorageIOError(f"Could not write {self.path}: {e}") from e
            self._sync()

            self.update_record_number(1)
            logger.debug("Appended %s to %s", record, self.path)

    def append_record_now(self, value: int, *, strict: bool = False) -> RecordInfo:
        """Append `value` timestamped with the current time. Returns the stored record."""
        time_offset = self.origin_date.offset(Timestamp.now())
        record = RecordInfo(time_offset=time_offset, value=value)
        self.append_record(record, strict=strict)
        return record

    def update_record(self, index: int, value: int) -> None:
        """Overwrite the value of the record at `index`, keeping its time offset."""
        if not 0 <= value <= MAX_U8:
            raise ValueError(f"Record value must fit in one octet, got {value}.")
        with self._lock:
            self._check_record_index(index)
            self._write_at(record_position(index) + VALUE_POSITION, bytes([value]))
            self._sync()
            logger.debug("Updated record %d of %s to %d", index, self.path, value)

    # --- Maintenance ---

    def check_db_file(self) -> DbIssue:
        """Look for issues in the database file.

        Only the first issue found is returned, so call this until it
        returns an issue of kind `IssueKind.NONE` to be sure the file is
        healthy.
        """
        with self._lock:
            try:
                header = self.read_header()
            except StorageIOError:
                return self._issue(IssueKind.HEADER_CORRUPTED)

            if not header.origin_date.is_valid():
                return self._issue(IssueKind.ORIGIN_DATE_INVALID)

            file_size = self._file_size()
            present = slots_in(file_size)

            latest = 0
            for index in range(header.records_number):
                if index >= present:
                    # A truncated slot is corruption, a missing one is a count mismatch
                    if file_size > record_position(index):
                        return self._issue(IssueKind.RECORD_CORRUPTED, index)
                    break
                try:
                    record = self.read_record(index)
                except (IndexOutOfBound, StorageIOError):
                    return self._issue(IssueKind.RECORD_CORRUPTED, index)
                if record.time_offset < latest:
                    return self._issue(IssueKind.UNORDERED_RECORD)
                latest = record.time_offset

            if present != header.records_number:
                return self._issue(IssueKind.MISMATCH_RECORD_AMOUNT)

            return DbIssue(kind=IssueKind.NONE)

    def _issue(self, kind: IssueKind, index: int | None = None) -> DbIssue:
        issue = DbIssue(kind=kind, index=index)
        logger.warning("Integrity scan of %s: %s", self.path, issue)
        return issue

    def reorder_record(self) -> None:
        """Sort every record by time offset and rewrite them.

        All records are loaded in memory, sorted, then written back from
        the start of the record area, so the whole file is rewritten even
        if a single record was misplaced.
        """
        with self._lock:
            records = list(self.iter_records())
            records.sort(key=RecordInfo.sort_key)
            self._write_at(HEADER_SIZE, b"".join(r.pack() for r in records))
            self._sync()
            logger.info("Reordered %d records in %s", len(records), self.path)

    # --- Display ---

    def __len__(self) -> int:
        return self.records_number

    def __repr__(self) -> str:
        return (
            f"PhysicalDB(path='{self.path}', origin={self.origin_date}, "
            f"records={self.records_number})"
        )
