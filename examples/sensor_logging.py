"""Example: log a simulated temperature sensor into a TSLite database.

Samples are recorded once per simulated minute, one of them is deliberately
written out of order, then the file is checked, repaired and exported.

Run:
    python examples/sensor_logging.py
"""

from datetime import datetime, timedelta, timezone

import numpy as np

from tslite import Recorder, Series, diagnose, export_csv

ORIGIN = datetime(2024, 1, 1, tzinfo=timezone.utc)


def main():
    rng = np.random.default_rng(42)
    temperatures = np.clip(20 + np.cumsum(rng.normal(0, 0.5, 120)), 0, 255).astype(int)

    with Recorder("sensor.tsl", origin=ORIGIN) as rec:
        for minute, temp in enumerate(temperatures):
            if minute == 60:
                # A late sample, stamped earlier than the previous one
                rec.record(int(temp), at=ORIGIN + timedelta(minutes=30, seconds=30))
                continue
            rec.record(int(temp), at=ORIGIN + timedelta(minutes=minute))
        print(rec)

    result = diagnose("sensor.tsl", repair=True)
    print(result.summary)

    with Series("sensor.tsl") as series:
        print(series)
        first_hour = series.between(ORIGIN, ORIGIN + timedelta(hours=1))
        print(f"Records in the first hour: {len(first_hour)}")

    print(f"Exported to {export_csv('sensor.tsl')}")


if __name__ == "__main__":
    main()
