"""
Typed failures raised by the ingestion → profiling → charting pipeline.

All of them are recoverable: the route layer turns them into a 4xx JSON
response via the handler registered in ``excel_analytics.main``.
"""

from __future__ import annotations


class ChartPipelineError(Exception):
    """Base class. ``status_code`` is the HTTP status the API reports."""

    status_code: int = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# ── Tabular Parser ───────────────────────────────────────────────────────────

class UnsupportedFormatError(ChartPipelineError):
    status_code = 415


class FileTooLargeError(ChartPipelineError):
    status_code = 413


class EmptyFileError(ChartPipelineError):
    pass


class ParseError(ChartPipelineError):
    status_code = 422


# ── Column Profiler ──────────────────────────────────────────────────────────

class EmptyDatasetError(ChartPipelineError):
    pass


# ── Series Builder ───────────────────────────────────────────────────────────

class NoXAxisSelectedError(ChartPipelineError):
    pass


class NoYAxisSelectedError(ChartPipelineError):
    pass


class EmptyFilteredDatasetError(ChartPipelineError):
    status_code = 422


# ── Chart payload ────────────────────────────────────────────────────────────

class InvalidChartError(ChartPipelineError):
    pass
