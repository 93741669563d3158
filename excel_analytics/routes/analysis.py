from fastapi import APIRouter, File, Form, HTTPException, UploadFile

from excel_analytics.schemas.charts import AnalysisResponse
from excel_analytics.services.pipeline import pipeline
from excel_analytics.services.storage import storage_service

router = APIRouter(prefix="/analyze", tags=["analysis"])


@router.post("", response_model=AnalysisResponse)
async def analyze_file(
    file: UploadFile = File(...),
    sheet_name: str | None = Form(None),
):
    """Parse, profile and suggest a chart for a file without storing anything."""
    content = await file.read()
    validation = storage_service.validate_file(file.filename, len(content))
    if not validation["valid"]:
        raise HTTPException(status_code=validation["status_code"], detail=validation["error"])

    records = pipeline.parse(
        content,
        filename=file.filename,
        content_type=file.content_type,
        sheet_name=sheet_name,
    )
    analysis = pipeline.analyze(records, filename=file.filename)
    return {"filename": file.filename, **analysis.to_dict()}
