"""TSLite — a very small embedded time-series database.

Each record is a one-octet value with its time, stored as a number of
seconds since the origin date of the database file. Every operation works
directly on the file, so heavy workloads should buffer in memory and write
periodically.

Quick start:
    from tslite import PhysicalDB, RecordInfo, Recorder, Series, diagnose

    # Low level
    db = PhysicalDB.open_or_create("boiler.tsl")
    db.append_record(RecordInfo(time_offset=60, value=42))
    db.append_record_now(43)
    print(db.read_record(0))
    db.close()

    # Record with real timestamps
    with Recorder("boiler.tsl") as rec:
        rec.record(read_sensor())

    # Read back
    with Series("boiler.tsl") as s:
        print(s)
        print(s.values())

    # Check and fix ordering
    result = diagnose("boiler.tsl", repair=True)
    print(result.summary)
"""

__version__ = "0.1.0"

from tslite.diagnose import DiagnosisResult, diagnose
from tslite.errors import (
    DecodeError,
    IndexOutOfBound,
    OffsetError,
    StorageIOError,
    TSLiteError,
    UnorderedRecordError,
)
from tslite.export.csv import export_csv
from tslite.recorder import Recorder
from tslite.series import Series
from tslite.storage.physical import PhysicalDB
from tslite.utils.schema import DbHeader, DbIssue, IssueKind, RecordInfo, Timestamp

__all__ = [
    "DbHeader",
    "DbIssue",
    "DecodeError",
    "DiagnosisResult",
    "IndexOutOfBound",
    "IssueKind",
    "OffsetError",
    "PhysicalDB",
    "RecordInfo",
    "Recorder",
    "Series",
    "StorageIOError",
    "TSLiteError",
    "Timestamp",
    "UnorderedRecordError",
    "diagnose",
    "export_csv",
    "__version__",
]
