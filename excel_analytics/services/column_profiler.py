"""
ColumnProfiler: per-column type classification and summary statistics.

A column is ``numeric`` when strictly more than ``numeric_threshold`` of its
present values coerce to a finite number; everything else is ``text``.
The classification drives axis selection in ``ChartAdvisor``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from excel_analytics.services.coercion import is_present, try_parse_finite_number
from excel_analytics.services.errors import EmptyDatasetError

NUMERIC_THRESHOLD = 0.7
SAMPLE_SIZE = 5

NUMERIC = "numeric"
TEXT = "text"


@dataclass
class ColumnProfile:
    """Profile of a single column across every record."""
    name: str
    total_rows: int
    non_empty_count: int
    numeric_count: int
    data_type: str  # numeric | text
    unique_count: int
    sample_values: list = field(default_factory=list)
    min: Optional[float] = None
    max: Optional[float] = None
    avg: Optional[float] = None

    @property
    def is_numeric(self) -> bool:
        return self.data_type == NUMERIC

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "totalRows": self.total_rows,
            "nonEmptyCount": self.non_empty_count,
            "dataType": self.data_type,
            "uniqueCount": self.unique_count,
            "sampleValues": list(self.sample_values),
            "min": self.min,
            "max": self.max,
            "avg": self.avg,
        }


def _hashable(value: Any) -> Any:
    """
    Set key for unique counts. Arrays / objects compare by their canonical JSON
    text; booleans are tagged so ``True`` and ``1`` stay distinct.
    """
    if isinstance(value, bool):
        return ("__bool__", value)
    if isinstance(value, (list, dict)):
        return ("__json__", json.dumps(value, sort_keys=True, default=str))
    return value


def column_names(records: Iterable[dict]) -> list[str]:
    """Union of keys across all records, in first-seen order."""
    seen: dict[str, None] = {}
    for record in records:
        for key in record:
            seen.setdefault(key, None)
    return list(seen)


class ColumnProfiler:
    def __init__(self, numeric_threshold: float = NUMERIC_THRESHOLD, sample_size: int = SAMPLE_SIZE):
        self.numeric_threshold = numeric_threshold
        self.sample_size = sample_size

    def profile(self, records: list[dict]) -> dict[str, ColumnProfile]:
        if not records:
            raise EmptyDatasetError("Cannot profile an empty dataset.")

        return {
            name: self.profile_column(name, [record.get(name) for record in records])
            for name in column_names(records)
        }

    def profile_column(self, name: str, values: list) -> ColumnProfile:
        present = [v for v in values if is_present(v)]
        numbers = [n for n in (try_parse_finite_number(v) for v in present) if n is not None]

        # Strict ">": exactly at the threshold stays text, as does a column with no values.
        is_numeric = bool(present) and len(numbers) > self.numeric_threshold * len(present)

        profile = ColumnProfile(
            name=name,
            total_rows=len(values),
            non_empty_count=len(present),
            numeric_count=len(numbers),
            data_type=NUMERIC if is_numeric else TEXT,
            unique_count=len({_hashable(v) for v in present}),
            sample_values=present[: self.sample_size],
        )

        if is_numeric:
            profile.min = min(numbers)
            profile.max = max(numbers)
            profile.avg = round(sum(numbers) / len(numbers), 2)

        return profile
