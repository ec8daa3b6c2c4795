"""SnapCal - calendar photos to importable .ics files."""

__version__ = "0.1.0"
