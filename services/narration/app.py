"""Narration and video-export API endpoints."""

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from services.auth import get_current_user_id
from services.narration.speech import SpeechSynthesizer
from services.pipeline import Pipeline, build_pipeline
from services.queue import QueueManager
from shared.exceptions import NotFoundError
from shared.models import (
    APIResponse,
    GenerateNarrationRequest,
    GenerateSpeakerNotesRequest,
    NarrationProjectResponse,
    NarrationSlideResult,
    UpdateSpeakerNotesRequest,
    UpdateSpeakerNotesResponse,
    VideoExportJobResponse,
    VideoExportRequest,
    VoiceOption,
)
from shared.utils import config, setup_logging

logger = setup_logging("narration-service")

app = FastAPI(
    title="Narration Service",
    description="Speaker notes, narration audio and video export for presentations",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.get("allowed_origins", ["*"]),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_pipeline: Pipeline | None = None


def get_pipeline() -> Pipeline:
    """Pipeline components, built on first use."""
    global _pipeline
    if _pipeline is None:
        _pipeline = build_pipeline(queue_manager=QueueManager())
    return _pipeline


@app.get("/health")
async def health_check():
    """Health check endpoint for the narration service."""
    return APIResponse(message="Narration Service is healthy")


@app.get("/voices", response_model=list[VoiceOption])
async def list_voices() -> list[VoiceOption]:
    """Voices available for narration."""
    return SpeechSynthesizer.voice_options()


@app.post("/{project_id}/speaker-notes/generate", response_model=list[NarrationSlideResult])
async def generate_speaker_notes(
    project_id: str,
    request: GenerateSpeakerNotesRequest,
    user_id: str = Depends(get_current_user_id),
    pipeline: Pipeline = Depends(get_pipeline),
) -> list[NarrationSlideResult]:
    """Generate speaker notes for every slide of a presentation."""
    try:
        return await pipeline.notes_generator.generate(
            project_id, user_id, tone=request.tone, length=request.duration
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except Exception as e:
        logger.error(f"Failed to generate speaker notes for {project_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to generate speaker notes: {e!s}") from e


@app.patch("/slides/{slide_id}/speaker-notes", response_model=UpdateSpeakerNotesResponse)
async def update_speaker_notes(
    slide_id: str,
    request: UpdateSpeakerNotesRequest,
    user_id: str = Depends(get_current_user_id),
    pipeline: Pipeline = Depends(get_pipeline),
) -> UpdateSpeakerNotesResponse:
    """Replace a slide's speaker notes with user-written text."""
    try:
        pipeline.notes_generator.update_speaker_notes(slide_id, request.speaker_notes, user_id)
        return UpdateSpeakerNotesResponse(success=True)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except Exception as e:
        logger.error(f"Failed to update speaker notes for slide {slide_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to update speaker notes: {e!s}") from e


@app.post("/{project_id}/generate", response_model=NarrationProjectResponse)
async def generate_narration(
    project_id: str,
    request: GenerateNarrationRequest,
    user_id: str = Depends(get_current_user_id),
    pipeline: Pipeline = Depends(get_pipeline),
) -> NarrationProjectResponse:
    """Start narration generation. Poll the returned project for progress."""
    try:
        return await pipeline.orchestrator.start_narration(
            project_id, user_id, voice=request.voice, speed=request.speed, slide_ids=request.slide_ids
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ConnectionError as e:
        raise HTTPException(status_code=503, detail="Job queue unavailable") from e
    except Exception as e:
        logger.error(f"Failed to start narration for {project_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to start narration: {e!s}") from e


@app.get("/projects/{narration_project_id}", response_model=NarrationProjectResponse)
async def get_narration_project(
    narration_project_id: str,
    user_id: str = Depends(get_current_user_id),
    pipeline: Pipeline = Depends(get_pipeline),
) -> NarrationProjectResponse:
    """Current state of a narration project."""
    try:
        return pipeline.orchestrator.get_narration_project(narration_project_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=f"Narration project {narration_project_id} not found") from e


@app.post("/{project_id}/export-video", response_model=VideoExportJobResponse)
async def export_video(
    project_id: str,
    request: VideoExportRequest,
    user_id: str = Depends(get_current_user_id),
    pipeline: Pipeline = Depends(get_pipeline),
) -> VideoExportJobResponse:
    """Start a video export. Poll the returned job for progress."""
    try:
        return pipeline.assembler.start_export(project_id, user_id, request)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ConnectionError as e:
        raise HTTPException(status_code=503, detail="Job queue unavailable") from e
    except Exception as e:
        logger.error(f"Failed to start video export for {project_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to start video export: {e!s}") from e


@app.get("/jobs/{job_id}", response_model=VideoExportJobResponse)
async def get_export_job(
    job_id: str,
    user_id: str = Depends(get_current_user_id),
    pipeline: Pipeline = Depends(get_pipeline),
) -> VideoExportJobResponse:
    """Current state of a video export job."""
    try:
        return pipeline.tracker.get(job_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=f"Job {job_id} not found") from e
