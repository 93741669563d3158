from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class UploadedFileResponse(BaseModel):
    id: int
    filename: str
    content_type: Optional[str] = None
    file_type: str
    file_size: int
    status: str
    row_count: Optional[int] = None
    column_count: Optional[int] = None
    error_message: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class UploadedFileListResponse(BaseModel):
    id: int
    filename: str
    file_type: str
    file_size: int
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class RenameFileRequest(BaseModel):
    filename: str
