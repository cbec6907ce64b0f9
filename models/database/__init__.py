"""
Database models package - SQLAlchemy ORM models
"""

from .export import VideoExportJob
from .narration import NarrationProject, NarrationSlide
from .presentation import Presentation
from .slide import Slide
from .speaker_note import SpeakerNote

__all__ = [
    "NarrationProject",
    "NarrationSlide",
    "Presentation",
    "Slide",
    "SpeakerNote",
    "VideoExportJob",
]
