from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from shared.enums import (
    DEFAULT_SLIDE_DURATION,
    ExportFormat,
    ExportStatus,
    NarrationStatus,
    NotesLength,
    NotesTone,
    Resolution,
    SlideTransition,
    VoiceGender,
    VoiceId,
)


class VoiceOption(BaseModel):
    id: VoiceId
    name: str
    description: str
    gender: VoiceGender
    style: str


# Request/Response Models
class GenerateSpeakerNotesRequest(BaseModel):
    tone: NotesTone = Field(default=NotesTone.PROFESSIONAL, description="Narration tone")
    duration: NotesLength = Field(
        default=NotesLength.MEDIUM, description="Length hint mapped to a spoken-duration guideline"
    )


class UpdateSpeakerNotesRequest(BaseModel):
    speaker_notes: str = Field(..., max_length=20000, description="Full replacement text")


class UpdateSpeakerNotesResponse(BaseModel):
    success: bool = True


class NarrationSlideResult(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    slide_id: str
    slide_number: int
    speaker_notes: str
    audio_url: str | None = None
    duration: float | None = None


class GenerateNarrationRequest(BaseModel):
    voice: VoiceId = Field(default=VoiceId.ALLOY, description="Voice to use")
    speed: float | None = Field(
        default=1.0, description="Speech speed; values outside 0.25-4.0 are clamped"
    )
    slide_ids: list[str] | None = Field(default=None, description="Restrict narration to these slides")


class NarrationProjectResponse(BaseModel):
    id: str
    project_id: str
    voice: str
    speed: float
    slides: list[NarrationSlideResult] = Field(default_factory=list)
    total_duration: float
    status: NarrationStatus
    created_at: datetime


class VideoExportRequest(BaseModel):
    format: ExportFormat = Field(default=ExportFormat.MP4, description="Output container")
    resolution: Resolution = Field(default=Resolution.FULL_HD, description="Target resolution")
    include_narration: bool = True
    slide_transition: SlideTransition | None = Field(default=None, description="Defaults to fade")
    slide_duration: int | None = Field(default=None, gt=0, le=600, description="Seconds per slide")
    narration_project_id: str | None = None


class VideoExportJobResponse(BaseModel):
    id: str
    project_id: str
    format: str
    resolution: str
    include_narration: bool
    slide_transition: str
    slide_duration: int = DEFAULT_SLIDE_DURATION
    narration_project_id: str | None = None
    status: ExportStatus
    progress: int
    output_url: str | None = None
    error: str | None = None
    created_at: datetime


class QueueWorkItem(BaseModel):
    """Payload stored on the job queue."""

    id: str
    job_type: str
    payload: dict[str, Any] = Field(default_factory=dict)
    attempt: int = 1
    enqueued_at: datetime = Field(default_factory=datetime.now)


class APIResponse(BaseModel):
    """Generic API response wrapper"""

    success: bool = True
    message: str = "Success"
    data: Any | None = None
    error: str | None = None
    timestamp: datetime = Field(default_factory=datetime.now)
