"""
SeriesBuilder: projects row records into Chart.js-style ``{labels, datasets}``.

Rows are filtered once on a present X value and that single filtered list
feeds every Y column, so ``len(dataset["data"]) == len(labels)`` holds for
every dataset. Missing or non-numeric Y values become 0, never None/NaN.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from excel_analytics.services.coercion import is_present, to_label, try_parse_finite_number
from excel_analytics.services.errors import (
    EmptyFilteredDatasetError,
    InvalidChartError,
    NoXAxisSelectedError,
    NoYAxisSelectedError,
)

DEFAULT_PALETTE: tuple[str, ...] = (
    "#6366f1", "#3b82f6", "#10b981", "#f59e0b",
    "#ef4444", "#8b5cf6", "#06b6d4", "#84cc16",
)
FILL_ALPHA = "80"

CHART_TYPES = ("bar", "line", "pie", "doughnut", "radar", "polarArea", "scatter")
# One colour per slice rather than per series
SLICE_CHART_TYPES = ("pie", "doughnut", "polarArea")


@dataclass
class SeriesData:
    labels: list[str] = field(default_factory=list)
    datasets: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"labels": list(self.labels), "datasets": copy.deepcopy(self.datasets)}


class SeriesBuilder:
    def __init__(self, palette: Sequence[str] = DEFAULT_PALETTE, fill_alpha: str = FILL_ALPHA):
        if not palette:
            raise ValueError("palette must contain at least one colour")
        self.palette = tuple(palette)
        self.fill_alpha = fill_alpha

    def build(
        self,
        records: list[dict],
        x_axis: Optional[str],
        y_axis: Sequence[str],
        chart_type: str = "bar",
    ) -> SeriesData:
        if not x_axis:
            raise NoXAxisSelectedError("Please select an X-axis column.")
        if not y_axis:
            raise NoYAxisSelectedError("Please select at least one Y-axis column.")

        rows = [row for row in records if is_present(row.get(x_axis))]
        if not rows:
            raise EmptyFilteredDatasetError(
                f"No valid data found for the selected X-axis column '{x_axis}'."
            )

        labels = [to_label(row[x_axis]) for row in rows]
        datasets = [
            self._dataset(y_col, index, rows, chart_type)
            for index, y_col in enumerate(y_axis)
        ]
        return SeriesData(labels=labels, datasets=datasets)

    def _dataset(self, y_col: str, index: int, rows: list[dict], chart_type: str) -> dict:
        data = []
        for row in rows:
            number = try_parse_finite_number(row.get(y_col))
            data.append(number if number is not None else 0)

        color = self.palette[index % len(self.palette)]
        if chart_type in SLICE_CHART_TYPES:
            background: Any = [c + self.fill_alpha for c in self.palette]
            border: Any = list(self.palette)
        else:
            background = color + self.fill_alpha
            border = color

        return {
            "label": y_col,
            "data": data,
            "backgroundColor": background,
            "borderColor": border,
            "borderWidth": 2,
            "tension": 0.4,
            "fill": chart_type != "line",
        }


# ── Persistence hand-off ─────────────────────────────────────────────────────

def validate_chart_data(chart_type: str, data: dict) -> None:
    """Reject payloads the renderer could not draw."""
    if chart_type not in CHART_TYPES:
        raise InvalidChartError(f"Invalid chart type '{chart_type}'.")

    labels = data.get("labels")
    datasets = data.get("datasets")
    if not isinstance(labels, list) or not isinstance(datasets, list):
        raise InvalidChartError("Invalid chart data structure.")

    for dataset in datasets:
        values = dataset.get("data")
        if not isinstance(values, list):
            raise InvalidChartError("Invalid dataset structure: data must be an array.")
        if len(values) != len(labels):
            raise InvalidChartError("Labels and data length mismatch.")
        if any(try_parse_finite_number(v) is None for v in values):
            raise InvalidChartError("Dataset values must all be finite numbers.")


def build_chart_payload(
    title: str,
    chart_type: str,
    series: SeriesData,
    x_axis: str,
    y_axis: Sequence[str],
    options: Optional[dict] = None,
) -> dict:
    """JSON-serialisable payload handed to the chart store."""
    if not title or not title.strip():
        raise InvalidChartError("Chart title is required.")

    data = series.to_dict()
    validate_chart_data(chart_type, data)

    payload = {
        "title": title.strip(),
        "chartType": chart_type,
        "data": data,
        "metadata": {"xAxis": x_axis, "yAxis": list(y_axis)},
    }
    if options is not None:
        payload["options"] = options
    return payload
