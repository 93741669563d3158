from __future__ import annotations
from datetime import datetime
from typing import Any, Literal, Optional
from pydantic import BaseModel, field_validator

ChartType = Literal["bar", "line", "pie", "doughnut", "radar", "polarArea", "scatter"]


# ── Pipeline output ──────────────────────────────────────────────────────────

class ColumnProfileResponse(BaseModel):
    name: str
    totalRows: int
    nonEmptyCount: int
    dataType: Literal["numeric", "text"]
    uniqueCount: int
    sampleValues: list[Any]
    min: Optional[float] = None
    max: Optional[float] = None
    avg: Optional[float] = None


class ChartConfigurationResponse(BaseModel):
    xAxis: Optional[str]
    yAxis: list[str]
    chartType: str


class DatasetResponse(BaseModel):
    label: str
    data: list[int | float]
    backgroundColor: Any
    borderColor: Any
    borderWidth: int = 2
    tension: float = 0.4
    fill: bool = True


class SeriesResponse(BaseModel):
    labels: list[str]
    datasets: list[DatasetResponse]


class AnalysisResponse(BaseModel):
    file_id: Optional[int] = None
    filename: Optional[str] = None
    row_count: int
    columns: list[str]
    profiles: list[ColumnProfileResponse]
    suggestion: ChartConfigurationResponse
    title: str
    preview: list[dict[str, Any]]
    series: Optional[SeriesResponse] = None


class SeriesRequest(BaseModel):
    x_axis: str
    y_axis: list[str] = []
    chart_type: ChartType = "bar"


# ── Saved charts ─────────────────────────────────────────────────────────────

class ChartMetadata(BaseModel):
    xAxis: Optional[str] = None
    yAxis: list[str] = []


class ChartCreateRequest(BaseModel):
    title: str
    chartType: ChartType
    data: SeriesResponse
    metadata: ChartMetadata = ChartMetadata()
    options: Optional[dict[str, Any]] = None
    file_id: Optional[int] = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Chart title is required")
        return value.strip()


class ChartResponse(BaseModel):
    id: int
    file_id: Optional[int]
    title: str
    chart_type: str
    data: Any
    options: Optional[Any]
    chart_metadata: Optional[Any]
    created_at: datetime

    model_config = {"from_attributes": True}


class ChartListItem(BaseModel):
    id: int
    file_id: Optional[int]
    title: str
    chart_type: str
    created_at: datetime

    model_config = {"from_attributes": True}
