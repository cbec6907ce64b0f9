"""
Enums and constants used across the application.
"""

from enum import Enum


class VoiceGender(str, Enum):
    """Voice genders shown in the voice catalogue."""

    MALE = "male"
    FEMALE = "female"
    NEUTRAL = "neutral"


class VoiceId(str, Enum):
    """Voices offered by the speech provider."""

    ALLOY = "alloy"
    ECHO = "echo"
    FABLE = "fable"
    ONYX = "onyx"
    NOVA = "nova"
    SHIMMER = "shimmer"


class NotesTone(str, Enum):
    """Tone requested for generated speaker notes."""

    PROFESSIONAL = "professional"
    CASUAL = "casual"
    EDUCATIONAL = "educational"
    PERSUASIVE = "persuasive"


class NotesLength(str, Enum):
    """Length hint for generated speaker notes."""

    SHORT = "short"
    MEDIUM = "medium"
    DETAILED = "detailed"


class NarrationStatus(str, Enum):
    """Lifecycle of a narration project."""

    PENDING = "pending"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


class ExportStatus(str, Enum):
    """Lifecycle of a video export job."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ExportStatus.COMPLETED, ExportStatus.FAILED)


class ExportFormat(str, Enum):
    """Container formats available for video exports."""

    MP4 = "mp4"
    WEBM = "webm"
    MP3 = "mp3"


class Resolution(str, Enum):
    """Target resolutions for video exports."""

    HD = "720p"
    FULL_HD = "1080p"
    UHD = "4k"


class SlideTransition(str, Enum):
    """Transition style between slides."""

    NONE = "none"
    FADE = "fade"
    SLIDE = "slide"


RESOLUTION_DIMENSIONS: dict[str, tuple[int, int]] = {
    Resolution.HD.value: (1280, 720),
    Resolution.FULL_HD.value: (1920, 1080),
    Resolution.UHD.value: (3840, 2160),
}

MIN_SPEED = 0.25
MAX_SPEED = 4.0
MIN_NARRATION_TEXT_LENGTH = 10
DEFAULT_SLIDE_DURATION = 5
