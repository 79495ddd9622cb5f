"""Cron job wrapper with JSON logging, alerting and a queryable execution history."""

__version__ = "0.1.0"