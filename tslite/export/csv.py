"""CSV export for TSLite databases.

Writes one row per record:

    index,time_offset,timestamp,value
    0,0,2024-01-01T00:00:00Z,12
    1,60,2024-01-01T00:01:00Z,14

The timestamp column is left empty when the origin date of the file is
invalid, so the raw offsets and values can still be recovered.
"""

from __future__ import annotations

import csv
from pathlib import Path

from tslite.series import Series

CSV_HEADERS = ["index", "time_offset", "timestamp", "value"]


def export_csv(path: str | Path, output: str | Path | None = None) -> Path:
    """Export a .tsl database to a CSV file.

    Args:
        path: Path to the .tsl file.
        output: CSV file to write. Defaults to the input path with a .csv suffix.

    Returns:
        Path to the created CSV file.
    """
    path = Path(path)
    out = path.with_suffix(".csv") if output is None else Path(output)
    out.parent.mkdir(parents=True, exist_ok=True)

    with Series(path) as series, open(out, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(CSV_HEADERS)
        for index, record in enumerate(series):
            writer.writerow(
                [index, record.time_offset, series.time_text(record, unknown=""), record.value]
            )

    return out
