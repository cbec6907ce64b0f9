"""Speaker-notes generation and manual editing."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from sqlalchemy.orm import Session

from models.database import SpeakerNote
from services.content_store import ContentStore
from services.narration.content import extract_slide_content
from services.text_generation.drivers import TextGenerationDriver
from shared.enums import NotesLength, NotesTone
from shared.exceptions import ProviderFailure
from shared.models import NarrationSlideResult
from shared.utils import config, setup_logging

logger = setup_logging("speaker-notes")

SYSTEM_PROMPT = (
    "You are an expert presentation coach. "
    "Generate engaging speaker notes that sound natural when spoken aloud."
)

DURATION_GUIDES: dict[NotesLength, str] = {
    NotesLength.SHORT: "30-60 seconds per slide",
    NotesLength.MEDIUM: "1-2 minutes per slide",
    NotesLength.DETAILED: "2-4 minutes per slide",
}


def build_notes_prompt(slide_number: int, content: str, tone: NotesTone, length: NotesLength) -> str:
    """Prompt asking the provider for notes for one slide."""
    guidelines = [
        f"- Tone: {tone.value}",
        f"- Target duration: {DURATION_GUIDES[length]}",
        "- The notes should be written as if speaking directly to the audience",
        '- Include natural pauses (indicated by "...")',
        "- Add emphasis cues for important points [EMPHASIS]",
    ]
    if slide_number > 1:
        guidelines.append("- Include a transition from the previous slide")

    return (
        "Generate speaker notes for this presentation slide.\n\n"
        f"SLIDE {slide_number} CONTENT:\n{content or '(no text content)'}\n\n"
        "GUIDELINES:\n" + "\n".join(guidelines) + "\n\n"
        "Return only the speaker notes, ready to be read aloud."
    )


class SpeakerNotesGenerator:
    """Generates narration text per slide and keeps the SpeakerNote table current."""

    def __init__(
        self,
        content_store: ContentStore,
        text_driver: TextGenerationDriver,
        session_factory: Callable[[], Session],
        timeout: float | None = None,
    ) -> None:
        self.content_store = content_store
        self.text_driver = text_driver
        self.session_factory = session_factory
        self.timeout = timeout if timeout is not None else float(config.get("provider_timeout", 60))
        self.temperature = float(config.get_pipeline_value("pipelines.speaker_notes.temperature", 0.7))
        self.max_tokens = int(config.get_pipeline_value("pipelines.speaker_notes.max_tokens", 500))

    async def _complete(self, prompt: str) -> str:
        try:
            return await asyncio.wait_for(
                self.text_driver.generate(
                    prompt,
                    system_prompt=SYSTEM_PROMPT,
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as exc:
            raise ProviderFailure(f"Text generation timed out after {self.timeout}s") from exc
        except ProviderFailure:
            raise
        except Exception as exc:
            raise ProviderFailure(f"Text generation failed: {exc}") from exc

    async def generate(
        self,
        project_id: str,
        user_id: str,
        tone: NotesTone | str = NotesTone.PROFESSIONAL,
        length: NotesLength | str = NotesLength.MEDIUM,
    ) -> list[NarrationSlideResult]:
        """Generate notes for every slide of a project, in slide order.

        A provider failure on one slide is logged and yields an entry with
        empty notes; the remaining slides are still processed.

        Raises:
            NotFoundError: project missing or not owned by ``user_id``
        """
        tone = NotesTone(tone)
        length = NotesLength(length)
        project = self.content_store.get_project(project_id, owner_id=user_id)
        logger.info(f"Generating speaker notes for {len(project.slides)} slides of project {project_id}")

        results: list[NarrationSlideResult] = []
        for index, slide in enumerate(project.slides):
            slide_number = index + 1
            prompt = build_notes_prompt(slide_number, extract_slide_content(slide.blocks), tone, length)
            try:
                notes = await self._complete(prompt)
            except ProviderFailure as exc:
                logger.error(f"Failed to generate speaker notes for slide {slide.id}: {exc}")
                notes = ""
            else:
                self._save_notes(slide.id, notes, is_ai_generated=True)

            results.append(
                NarrationSlideResult(slide_id=slide.id, slide_number=slide_number, speaker_notes=notes)
            )

        return results

    def update_speaker_notes(self, slide_id: str, text: str, user_id: str) -> SpeakerNote:
        """Replace a slide's notes with user-written text.

        Raises:
            NotFoundError: slide missing or its project not owned by ``user_id``
        """
        self.content_store.get_slide(slide_id, owner_id=user_id)
        return self._save_notes(slide_id, text, is_ai_generated=False)

    def _save_notes(self, slide_id: str, text: str, *, is_ai_generated: bool) -> SpeakerNote:
        with self.session_factory() as session:
            note = session.query(SpeakerNote).filter(SpeakerNote.slide_id == slide_id).first()
            if note is None:
                note = SpeakerNote(slide_id=slide_id)
                session.add(note)
            note.content = text
            note.is_ai_generated = is_ai_generated
            session.commit()
            session.refresh(note)
            session.expunge(note)
            return note
