"""Web dashboard and JSON API for a job-hunting pipeline."""

__version__ = "0.1.0"