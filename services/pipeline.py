"""Wiring of the pipeline components shared by the API and the workers."""

from collections.abc import Callable
from dataclasses import dataclass

from sqlalchemy.orm import Session

from services.content_store import ContentStore, SQLContentStore
from services.export.assembler import VideoAssembler
from services.export.encoder import FFmpegEncoder
from services.export.tracker import ExportJobTracker
from services.narration.orchestrator import NarrationOrchestrator
from services.narration.speaker_notes import SpeakerNotesGenerator
from services.narration.speech import SpeechSynthesizer
from services.queue import QueueManager
from services.storage import ArtifactStore, create_artifact_store
from services.text_generation.drivers import OpenAITextGenerationDriver, TextGenerationDriver
from services.tts_service.drivers import OpenAITTSEngine, TTSEngine


@dataclass
class Pipeline:
    content_store: ContentStore
    notes_generator: SpeakerNotesGenerator
    synthesizer: SpeechSynthesizer
    orchestrator: NarrationOrchestrator
    tracker: ExportJobTracker
    assembler: VideoAssembler
    queue_manager: QueueManager | None


def build_pipeline(
    session_factory: Callable[[], Session] | None = None,
    *,
    content_store: ContentStore | None = None,
    text_driver: TextGenerationDriver | None = None,
    tts_engine: TTSEngine | None = None,
    artifact_store: ArtifactStore | None = None,
    encoder: FFmpegEncoder | None = None,
    queue_manager: QueueManager | None = None,
) -> Pipeline:
    """Build every component, constructing defaults for anything not supplied."""
    if session_factory is None:
        from database import SessionLocal

        session_factory = SessionLocal

    content_store = content_store or SQLContentStore(session_factory)
    artifact_store = artifact_store or create_artifact_store()
    synthesizer = SpeechSynthesizer(tts_engine or OpenAITTSEngine())
    tracker = ExportJobTracker(session_factory)

    return Pipeline(
        content_store=content_store,
        notes_generator=SpeakerNotesGenerator(
            content_store, text_driver or OpenAITextGenerationDriver(), session_factory
        ),
        synthesizer=synthesizer,
        orchestrator=NarrationOrchestrator(
            content_store, synthesizer, artifact_store, session_factory, queue_manager=queue_manager
        ),
        tracker=tracker,
        assembler=VideoAssembler(
            content_store,
            tracker,
            artifact_store,
            session_factory,
            encoder=encoder,
            queue_manager=queue_manager,
        ),
        queue_manager=queue_manager,
    )
