# meet_sync/core/exceptions.py
from __future__ import annotations


class PipelineError(RuntimeError):
    """
    Base class for structural failures of the activity pipeline.

    Anything derived from this aborts the current date. The range runner
    logs it and moves on; the single-date runner lets it propagate.
    """


class ConfigurationError(PipelineError):
    """
    Raised when a required credential or identifier is not configured.
    """


class UpstreamFetchError(PipelineError):
    """
    Raised when a page of audit-log activities cannot be retrieved.
    """


class IngestionError(PipelineError):
    """
    Raised when a batch cannot be delivered to the analytics store.
    """


class InvalidDateRangeError(ValueError):
    """
    Raised when a date range starts after it ends.
    """
