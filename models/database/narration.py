"""
Narration models - narration projects and their per-slide audio
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from database import Base


class NarrationProject(Base):
    """One narration-generation request for a presentation"""

    __tablename__ = "narration_projects"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    project_id = Column(String(36), nullable=False, index=True)
    voice = Column(String(50), nullable=False)
    speed = Column(Float, nullable=False, default=1.0)
    status = Column(String(20), nullable=False, default="pending")  # pending, generating, completed, failed
    total_duration = Column(Float, nullable=False, default=0.0)  # seconds
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=True,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    slides = relationship(
        "NarrationSlide",
        back_populates="narration_project",
        cascade="all, delete-orphan",
        order_by="NarrationSlide.slide_number",
    )


class NarrationSlide(Base):
    """Synthesized narration for a single slide"""

    __tablename__ = "narration_slides"
    __table_args__ = (
        UniqueConstraint("narration_project_id", "slide_id", name="uq_narration_slides_project_slide"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    narration_project_id = Column(
        String(36), ForeignKey("narration_projects.id"), nullable=False, index=True
    )
    slide_id = Column(String(36), nullable=False)
    slide_number = Column(Integer, nullable=False)  # 1-based index
    speaker_notes = Column(Text, nullable=False)
    audio_url = Column(String(1000), nullable=True)
    duration = Column(Float, nullable=True)  # seconds
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    # Relationships
    narration_project = relationship("NarrationProject", back_populates="slides")
