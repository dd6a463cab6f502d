"""Integrity checking and repair for TSLite databases."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from tslite.errors import StorageIOError, TSLiteError
from tslite.storage.physical import PhysicalDB
from tslite.utils.schema import DbIssue, IssueKind

logger = logging.getLogger(__name__)

# Only disorder can be fixed, by sorting the whole file
REPAIRABLE = frozenset({IssueKind.UNORDERED_RECORD})


@dataclass
class DiagnosisResult:
    """Result of diagnosing a database file."""

    path: Path
    records_number: int | None = None
    issues: list[DbIssue] = field(default_factory=list)
    fixed: list[DbIssue] = field(default_factory=list)
    remaining: DbIssue | None = None

    @property
    def repaired(self) -> bool:
        return len(self.fixed) > 0

    @property
    def healthy(self) -> bool:
        return self.remaining is None

    @property
    def summary(self) -> str:
        if not self.issues:
            return "No issue found. Database looks healthy."
        lines = [f"fixed: {issue.description}" for issue in self.fixed]
        if self.remaining is not None:
            lines.append(f"found: {self.remaining.description}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"DiagnosisResult(path='{self.path}', issues={len(self.issues)}, "
            f"healthy={self.healthy})"
        )


def diagnose(path: str | Path, repair: bool = False) -> DiagnosisResult:
    """Scan a database file until it is healthy or an unfixable issue is found.

    Each scan stops at the first issue, so the file is scanned again after
    every repair.

    Args:
        path: Path to a .tsl file.
        repair: Reorder the records when they are not chronological.

    Returns:
        DiagnosisResult with every issue found, in order.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Database not found: {path}")

    result = DiagnosisResult(path=path)
    try:
        db = PhysicalDB.open_or_create(path)
    except StorageIOError:
        result.remaining = DbIssue(kind=IssueKind.HEADER_CORRUPTED)
        result.issues.append(result.remaining)
        logger.warning("Diagnosis of %s: %s", path, result.remaining)
        return result

    with db:
        result.records_number = db.records_number
        while True:
            issue = db.check_db_file()
            if not issue:
                break
            result.issues.append(issue)
            # Sorting fixes every disorder at once, so a second one is not retried
            if repair and issue.kind in REPAIRABLE and issue not in result.fixed:
                try:
                    db.reorder_record()
                except TSLiteError as e:
                    logger.warning("Could not reorder %s: %s", path, e)
                    # Sorting reads every declared record, so missing ones block it
                    if db.physical_record_count() != db.records_number:
                        issue = DbIssue(kind=IssueKind.MISMATCH_RECORD_AMOUNT)
                        result.issues.append(issue)
                    result.remaining = issue
                    break
                result.fixed.append(issue)
                continue
            result.remaining = issue
            break

    if result.healthy:
        logger.info("Diagnosis of %s: healthy", path)
    else:
        logger.warning("Diagnosis of %s: %s", path, result.remaining)
    return result
