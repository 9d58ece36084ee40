"""Polls vitals-glimpse endpoints and stores server metrics in InfluxDB."""

__version__ = "1.0.0"
