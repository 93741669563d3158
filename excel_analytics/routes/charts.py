import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from excel_analytics.database import get_db
from excel_analytics.models.chart import Chart
from excel_analytics.models.uploaded_file import UploadedFile
from excel_analytics.schemas.charts import ChartCreateRequest, ChartListItem, ChartResponse
from excel_analytics.services.series_builder import SeriesData, build_chart_payload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/charts", tags=["charts"])


def _get_chart_or_404(chart_id: int, db: Session) -> Chart:
    chart = db.query(Chart).filter(Chart.id == chart_id).first()
    if not chart:
        raise HTTPException(status_code=404, detail="No chart found with that ID")
    return chart


@router.post("", response_model=ChartResponse, status_code=201)
def save_chart(payload: ChartCreateRequest, db: Session = Depends(get_db)):
    if payload.file_id is not None:
        source = db.query(UploadedFile).filter(UploadedFile.id == payload.file_id).first()
        if not source:
            raise HTTPException(status_code=404, detail=f"File not found (ID: {payload.file_id})")

    data = payload.data.model_dump()
    chart_payload = build_chart_payload(
        title=payload.title,
        chart_type=payload.chartType,
        series=SeriesData(labels=data["labels"], datasets=data["datasets"]),
        x_axis=payload.metadata.xAxis,
        y_axis=payload.metadata.yAxis,
        options=payload.options,
    )

    chart = Chart(
        file_id=payload.file_id,
        title=chart_payload["title"],
        chart_type=chart_payload["chartType"],
        data=chart_payload["data"],
        options=chart_payload.get("options") or {},
        chart_metadata=chart_payload["metadata"],
    )
    db.add(chart)
    db.commit()
    db.refresh(chart)
    logger.info("Saved chart %s (%s, %d points)", chart.id, chart.chart_type, len(chart.data["labels"]))
    return chart


@router.get("", response_model=list[ChartListItem])
def list_charts(db: Session = Depends(get_db)):
    return db.query(Chart).order_by(Chart.created_at.desc()).all()


@router.get("/{chart_id}", response_model=ChartResponse)
def get_chart(chart_id: int, db: Session = Depends(get_db)):
    return _get_chart_or_404(chart_id, db)


@router.delete("/{chart_id}")
def delete_chart(chart_id: int, db: Session = Depends(get_db)):
    chart = _get_chart_or_404(chart_id, db)
    db.delete(chart)
    db.commit()
    return {"message": "Chart deleted"}
