"""
Presentation model - decks owned by the external content store
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import JSON, Column, DateTime, String
from sqlalchemy.orm import relationship

from database import Base


class Presentation(Base):
    """Presentation project as seen by the export pipeline (read-only)"""

    __tablename__ = "presentations"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    owner_id = Column(String(255), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    theme = Column(JSON, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    slides = relationship(
        "Slide",
        back_populates="presentation",
        cascade="all, delete-orphan",
        order_by="Slide.position",
    )
