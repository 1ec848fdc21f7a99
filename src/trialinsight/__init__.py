"""Clinical-trial patient-insight dashboard: scoring engine and API."""

__version__ = "0.1.0"
