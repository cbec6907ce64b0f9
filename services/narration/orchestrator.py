"""Narration orchestrator: turns speaker notes into stored per-slide audio."""

import asyncio
from collections.abc import Callable

from sqlalchemy.orm import Session

from models.database import NarrationProject, NarrationSlide, SpeakerNote
from services.content_store import ContentStore
from services.narration.content import extract_slide_content
from services.narration.speech import SpeechSynthesizer
from services.queue import JOB_QUEUE_KEY, NARRATION_JOB, QueueManager
from services.storage import NARRATION_PREFIX, ArtifactStore, build_artifact_key
from shared.enums import MAX_SPEED, MIN_NARRATION_TEXT_LENGTH, MIN_SPEED, NarrationStatus, VoiceId
from shared.exceptions import NotFoundError, PipelineError, ProviderFailure, StorageFailure
from shared.models import NarrationProjectResponse, NarrationSlideResult
from shared.utils import clamp_float, config, setup_logging

logger = setup_logging("narration-orchestrator")


class NarrationOrchestrator:
    """Creates narration projects and runs the per-slide synthesis loop."""

    def __init__(
        self,
        content_store: ContentStore,
        synthesizer: SpeechSynthesizer,
        artifact_store: ArtifactStore,
        session_factory: Callable[[], Session],
        queue_manager: QueueManager | None = None,
        queue_key: str = JOB_QUEUE_KEY,
    ):
        self.content_store = content_store
        self.synthesizer = synthesizer
        self.artifact_store = artifact_store
        self.session_factory = session_factory
        self.queue_manager = queue_manager
        self.queue_key = queue_key
        self.min_text_length = int(
            config.get_pipeline_value("pipelines.narration.min_text_length", MIN_NARRATION_TEXT_LENGTH)
        )

    async def start_narration(
        self,
        project_id: str,
        user_id: str,
        voice: VoiceId | str = VoiceId.ALLOY,
        speed: float | None = 1.0,
        slide_ids: list[str] | None = None,
    ) -> NarrationProjectResponse:
        """Validate the request, create the narration project and queue it.

        Raises:
            NotFoundError: project missing or not owned by ``user_id``
        """
        voice = VoiceId(voice)
        self.content_store.get_project(project_id, owner_id=user_id)
        speed = clamp_float(speed, default=1.0, minimum=MIN_SPEED, maximum=MAX_SPEED)

        with self.session_factory() as session:
            narration = NarrationProject(
                project_id=project_id,
                voice=voice.value,
                speed=speed,
                status=NarrationStatus.GENERATING.value,
                total_duration=0.0,
            )
            session.add(narration)
            session.commit()
            session.refresh(narration)
            summary = self._to_response(narration)

        if self.queue_manager is not None:
            try:
                self.queue_manager.submit(
                    self.queue_key,
                    NARRATION_JOB,
                    {"narration_project_id": summary.id, "slide_ids": slide_ids},
                    item_id=summary.id,
                )
            except ConnectionError:
                self._finish(summary.id, NarrationStatus.FAILED)
                raise

        logger.info(f"Started narration {summary.id} for project {project_id} (voice={voice.value}, speed={speed})")
        return summary

    async def run_narration(
        self,
        narration_project_id: str,
        slide_ids: list[str] | None = None,
        final_attempt: bool = True,
    ) -> NarrationProjectResponse:
        """Synthesize and store audio for each eligible slide, in slide order.

        Slides already narrated for this project by an earlier attempt are kept
        as they are. A synthesis or storage failure skips only that slide. Any
        other error marks the project failed when no retry will follow, and is
        re-raised for the worker.
        """
        with self.session_factory() as session:
            narration = session.get(NarrationProject, narration_project_id)
            if narration is None:
                raise NotFoundError("Narration project not found")
            project_id = narration.project_id
            voice = narration.voice
            speed = narration.speed

        try:
            project = self.content_store.get_project(project_id)
            slides = project.slides
            if slide_ids is not None:
                wanted = set(slide_ids)
                slides = [slide for slide in slides if slide.id in wanted]

            total_duration = 0.0
            for index, slide in enumerate(slides):
                slide_number = index + 1

                existing = self._find_slide(narration_project_id, slide.id)
                if existing is not None:
                    logger.info(f"Slide {slide.id} already narrated for {narration_project_id}, reusing")
                    total_duration += existing.duration or 0.0
                    self._save_total(narration_project_id, total_duration)
                    continue

                notes = self._get_stored_notes(slide.id)
                text = notes if notes and notes.strip() else extract_slide_content(slide.blocks)
                if len(text.strip()) < self.min_text_length:
                    logger.debug(f"Skipping slide {slide.id}: narration text too short")
                    continue

                try:
                    speech = await self.synthesizer.synthesize(slide.id, text, voice, speed)
                    key = build_artifact_key(NARRATION_PREFIX, slide.id, speech.extension)
                    audio_url = await asyncio.to_thread(
                        self.artifact_store.store, speech.audio, speech.content_type, key
                    )
                except (ProviderFailure, StorageFailure) as e:
                    logger.error(f"Failed to generate audio for slide {slide.id}: {e}")
                    continue

                self._add_slide(narration_project_id, slide.id, slide_number, text, audio_url, speech.duration)
                total_duration += speech.duration
                self._save_total(narration_project_id, total_duration)

            self._finish(narration_project_id, NarrationStatus.COMPLETED, total_duration)
            logger.info(f"Narration {narration_project_id} completed ({total_duration:.1f}s)")
        except Exception as e:
            logger.error(f"Narration project {narration_project_id} failed: {e}")
            if final_attempt or isinstance(e, PipelineError):
                self._finish(narration_project_id, NarrationStatus.FAILED)
            raise

        return self.get_narration_project(narration_project_id)

    def get_narration_project(self, narration_project_id: str) -> NarrationProjectResponse:
        """Return the persisted state of a narration project.

        Raises:
            NotFoundError: unknown id
        """
        with self.session_factory() as session:
            narration = session.get(NarrationProject, narration_project_id)
            if narration is None:
                raise NotFoundError("Narration project not found")
            return self._to_response(narration)

    def _get_stored_notes(self, slide_id: str) -> str | None:
        with self.session_factory() as session:
            note = session.query(SpeakerNote).filter(SpeakerNote.slide_id == slide_id).first()
            return note.content if note is not None else None

    def _find_slide(self, narration_project_id: str, slide_id: str) -> NarrationSlide | None:
        with self.session_factory() as session:
            row = (
                session.query(NarrationSlide)
                .filter(
                    NarrationSlide.narration_project_id == narration_project_id,
                    NarrationSlide.slide_id == slide_id,
                )
                .first()
            )
            if row is not None:
                session.expunge(row)
            return row

    def _add_slide(
        self,
        narration_project_id: str,
        slide_id: str,
        slide_number: int,
        speaker_notes: str,
        audio_url: str,
        duration: float,
    ) -> None:
        with self.session_factory() as session:
            session.add(
                NarrationSlide(
                    narration_project_id=narration_project_id,
                    slide_id=slide_id,
                    slide_number=slide_number,
                    speaker_notes=speaker_notes,
                    audio_url=audio_url,
                    duration=duration,
                )
            )
            session.commit()

    def _save_total(self, narration_project_id: str, total_duration: float) -> None:
        with self.session_factory() as session:
            narration = session.get(NarrationProject, narration_project_id)
            if narration is not None:
                narration.total_duration = total_duration
                session.commit()

    def _finish(
        self,
        narration_project_id: str,
        status: NarrationStatus,
        total_duration: float | None = None,
    ) -> None:
        with self.session_factory() as session:
            narration = session.get(NarrationProject, narration_project_id)
            if narration is None:
                return
            narration.status = status.value
            if total_duration is not None:
                narration.total_duration = total_duration
            session.commit()

    @staticmethod
    def _to_response(narration: NarrationProject) -> NarrationProjectResponse:
        return NarrationProjectResponse(
            id=narration.id,
            project_id=narration.project_id,
            voice=narration.voice,
            speed=narration.speed,
            slides=[NarrationSlideResult.model_validate(slide) for slide in narration.slides],
            total_duration=narration.total_duration or 0.0,
            status=NarrationStatus(narration.status),
            created_at=narration.created_at,
        )
