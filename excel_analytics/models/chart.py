from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from excel_analytics.database import Base


class Chart(Base):
    __tablename__ = "charts"

    id = Column(Integer, primary_key=True, index=True)
    file_id = Column(Integer, ForeignKey("uploaded_files.id", ondelete="SET NULL"), nullable=True)
    title = Column(String, nullable=False)
    chart_type = Column(String, nullable=False)  # bar|line|pie|doughnut|radar|polarArea|scatter
    data = Column(JSON, nullable=False)           # {labels, datasets}
    options = Column(JSON, nullable=True)         # renderer options, passed through untouched
    chart_metadata = Column(JSON, nullable=True)  # {xAxis, yAxis}
    created_at = Column(DateTime, default=datetime.utcnow)

    source_file = relationship("UploadedFile", back_populates="charts")
