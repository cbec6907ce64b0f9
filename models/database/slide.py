"""
Slide model - Individual presentation slides and their content blocks
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from database import Base


class Slide(Base):
    """Individual slide content and metadata"""

    __tablename__ = "slides"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    presentation_id = Column(String(36), ForeignKey("presentations.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)  # ascending display order
    title = Column(String(500), nullable=True)
    # [{"type": "TEXT", "content": {"text": "..."}}, ...]
    blocks = Column(JSON, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    # Relationships
    presentation = relationship("Presentation", back_populates="slides")
