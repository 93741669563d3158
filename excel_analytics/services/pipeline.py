"""
ChartPipeline: wires the parser, profiler, advisor and series builder.

  1. Parse bytes into row records (TabularParser)
  2. Profile every column (ColumnProfiler)
  3. Suggest xAxis / yAxis / chartType (ChartAdvisor)
  4. Build series for the suggestion when it has a Y column (SeriesBuilder)

Explicit user axis choices go through ``build_series`` only and never
re-run the advisor.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from excel_analytics.config import settings
from excel_analytics.services.chart_advisor import (
    ChartAdvisor,
    ChartConfiguration,
    default_title,
    suggest_title,
)
from excel_analytics.services.column_profiler import ColumnProfile, ColumnProfiler, column_names
from excel_analytics.services.errors import EmptyFilteredDatasetError
from excel_analytics.services.series_builder import SeriesBuilder, SeriesData
from excel_analytics.services.tabular_parser import TabularParser

logger = logging.getLogger(__name__)

PREVIEW_ROWS = 10


@dataclass
class Analysis:
    records: list[dict]
    columns: list[str]
    profiles: dict[str, ColumnProfile]
    suggestion: ChartConfiguration
    title: str
    series: Optional[SeriesData] = None
    preview: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "row_count": len(self.records),
            "columns": list(self.columns),
            "profiles": [self.profiles[c].to_dict() for c in self.columns],
            "suggestion": self.suggestion.to_dict(),
            "title": self.title,
            "preview": [dict(r) for r in self.preview],
            "series": self.series.to_dict() if self.series else None,
        }


class ChartPipeline:
    def __init__(
        self,
        parser: Optional[TabularParser] = None,
        profiler: Optional[ColumnProfiler] = None,
        advisor: Optional[ChartAdvisor] = None,
        builder: Optional[SeriesBuilder] = None,
    ):
        self.parser = parser or TabularParser()
        self.profiler = profiler or ColumnProfiler()
        self.advisor = advisor or ChartAdvisor()
        self.builder = builder or SeriesBuilder()

    def parse(
        self,
        content: bytes,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
        sheet_name: Optional[str] = None,
        fmt: Optional[str] = None,
    ) -> list[dict]:
        return self.parser.parse(
            content, filename=filename, content_type=content_type, fmt=fmt, sheet_name=sheet_name
        )

    def analyze(self, records: list[dict], filename: Optional[str] = None) -> Analysis:
        profiles = self.profiler.profile(records)
        columns = column_names(records)
        suggestion = self.advisor.suggest(columns, profiles)

        series = None
        title = default_title(filename)
        if suggestion.y_axis:
            title = suggest_title(suggestion.x_axis, suggestion.y_axis)
            try:
                series = self.builder.build(records, suggestion.x_axis, suggestion.y_axis, suggestion.chart_type)
            except EmptyFilteredDatasetError as exc:
                # Suggested X column has no values at all; the user picks another.
                logger.info("Suggested series for %s unavailable: %s", filename or "<upload>", exc.message)
        else:
            logger.info("No numeric columns in %s; skipping series suggestion", filename or "<upload>")

        return Analysis(
            records=records,
            columns=columns,
            profiles=profiles,
            suggestion=suggestion,
            title=title,
            series=series,
            preview=records[:PREVIEW_ROWS],
        )

    def build_series(
        self,
        records: list[dict],
        x_axis: Optional[str],
        y_axis: Sequence[str],
        chart_type: str = "bar",
    ) -> SeriesData:
        return self.builder.build(records, x_axis, y_axis, chart_type)


pipeline = ChartPipeline(parser=TabularParser(max_bytes=settings.MAX_UPLOAD_BYTES))
