"""Resumable, idempotent content export to an llms.txt manifest."""

__version__ = "0.1.0"
