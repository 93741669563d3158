from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from datetime import datetime
from excel_analytics.database import Base


class UploadedFile(Base):
    __tablename__ = "uploaded_files"

    id = Column(Integer, primary_key=True, index=True)

    # File metadata
    filename = Column(String, nullable=False)
    content_type = Column(String, nullable=True)
    file_type = Column(String, nullable=False)  # csv | xlsx | xls | json
    file_size = Column(Integer, nullable=False)
    file_path = Column(String, nullable=False, default="")  # s3://bucket/key

    # Processing status
    status = Column(String, default="processing")  # processing/processed/failed
    error_message = Column(String, nullable=True)

    # Results (filled after parsing)
    row_count = Column(Integer, nullable=True)
    column_count = Column(Integer, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    charts = relationship("Chart", back_populates="source_file")
