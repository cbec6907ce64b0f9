"""
Speaker note model - latest narration text per slide
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, String, Text

from database import Base


class SpeakerNote(Base):
    """Generated or hand-edited narration text, at most one per slide"""

    __tablename__ = "speaker_notes"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    slide_id = Column(String(36), nullable=False, unique=True, index=True)
    content = Column(Text, nullable=False, default="")
    is_ai_generated = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=True,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<SpeakerNote(slide_id={self.slide_id}, ai={self.is_ai_generated})>"
