"""Export modules for TSLite databases."""

from tslite.export.csv import export_csv

__all__ = ["export_csv"]
