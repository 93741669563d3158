"""
ChartAdvisor: picks a default X axis, Y series and chart type from column profiles.

The suggestion is only a starting point. Once a user chooses axes or a chart
type explicitly, callers go straight to ``SeriesBuilder`` and must not
re-run the advisor.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from excel_analytics.services.column_profiler import ColumnProfile

CATEGORICAL_RATIO = 0.8
MAX_SERIES = 3


@dataclass
class ChartConfiguration:
    x_axis: Optional[str]
    y_axis: list[str] = field(default_factory=list)
    chart_type: str = "line"

    def to_dict(self) -> dict:
        return {"xAxis": self.x_axis, "yAxis": list(self.y_axis), "chartType": self.chart_type}


class ChartAdvisor:
    def __init__(self, categorical_ratio: float = CATEGORICAL_RATIO, max_series: int = MAX_SERIES):
        self.categorical_ratio = categorical_ratio
        self.max_series = max_series

    def suggest(self, columns: list[str], profiles: dict[str, ColumnProfile]) -> ChartConfiguration:
        text_columns = [c for c in columns if c in profiles and not profiles[c].is_numeric]
        numeric_columns = [c for c in columns if c in profiles and profiles[c].is_numeric]

        return ChartConfiguration(
            x_axis=self.choose_x_axis(columns, text_columns, profiles),
            y_axis=numeric_columns[: self.max_series],
            chart_type=self.choose_chart_type(len(numeric_columns), len(text_columns)),
        )

    def choose_x_axis(
        self,
        columns: list[str],
        text_columns: list[str],
        profiles: dict[str, ColumnProfile],
    ) -> Optional[str]:
        """Prefer a categorical text column: neither constant nor near-unique."""
        for col in text_columns:
            profile = profiles[col]
            if 1 < profile.unique_count < profile.total_rows * self.categorical_ratio:
                return col
        if text_columns:
            return text_columns[0]
        return columns[0] if columns else None

    @staticmethod
    def choose_chart_type(numeric_count: int, text_count: int) -> str:
        if numeric_count == 1 and text_count >= 1:
            return "pie"
        if numeric_count >= 2:
            return "bar"
        return "line"


def suggest_title(x_axis: Optional[str], y_axis: list[str]) -> str:
    if not x_axis or not y_axis:
        return "Interactive Data Visualization"
    return f"{', '.join(y_axis)} by {x_axis}"


def default_title(filename: Optional[str]) -> str:
    return f"Data from {filename}" if filename else "Interactive Data Visualization"
