"""
Video export model - export requests and their progress
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text

from database import Base


class VideoExportJob(Base):
    """Video (or slideshow fallback) export request"""

    __tablename__ = "video_export_jobs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    project_id = Column(String(36), nullable=False, index=True)
    narration_project_id = Column(String(36), ForeignKey("narration_projects.id"), nullable=True)
    format = Column(String(10), nullable=False, default="mp4")
    resolution = Column(String(10), nullable=False, default="1080p")
    include_narration = Column(Boolean, nullable=False, default=True)
    slide_transition = Column(String(10), nullable=False, default="fade")
    slide_duration = Column(Integer, nullable=False, default=5)  # seconds per slide
    status = Column(String(20), nullable=False, default="pending")  # pending, processing, completed, failed
    progress = Column(Integer, nullable=False, default=0)
    output_url = Column(String(1000), nullable=True)
    error = Column(Text, nullable=True)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
