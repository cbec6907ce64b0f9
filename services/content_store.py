"""Read-only access to presentations owned by the external content store.

The pipeline never writes presentations or slides. It only needs to resolve a
project (with ordered slides and theme) for a requester, or a single slide when
a user edits its speaker notes. Anything the requester does not own is reported
as missing.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.orm import Session, selectinload

from models.database import Presentation, Slide
from shared.exceptions import NotFoundError


@dataclass(frozen=True)
class SlideRecord:
    id: str
    position: int
    title: str | None
    blocks: list[dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class ProjectRecord:
    id: str
    owner_id: str
    title: str
    theme: dict[str, Any] = field(default_factory=dict)
    slides: list[SlideRecord] = field(default_factory=list)


class ContentStore(ABC):
    """Interface to the presentation store."""

    @abstractmethod
    def get_project(self, project_id: str, owner_id: str | None = None) -> ProjectRecord:
        """Return the project with slides in ascending order.

        Raises:
            NotFoundError: project missing, or not owned by ``owner_id`` when given
        """

    @abstractmethod
    def get_slide(self, slide_id: str, owner_id: str) -> SlideRecord:
        """Return a slide whose parent project is owned by ``owner_id``.

        Raises:
            NotFoundError: slide missing or owned by someone else
        """


class SQLContentStore(ContentStore):
    """Content store backed by the ``presentations``/``slides`` tables."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self.session_factory = session_factory

    def get_project(self, project_id: str, owner_id: str | None = None) -> ProjectRecord:
        with self.session_factory() as session:
            query = (
                session.query(Presentation)
                .options(selectinload(Presentation.slides))
                .filter(Presentation.id == project_id)
            )
            if owner_id is not None:
                query = query.filter(Presentation.owner_id == owner_id)
            presentation = query.first()
            if presentation is None:
                raise NotFoundError("Project not found")
            return self._to_project(presentation)

    def get_slide(self, slide_id: str, owner_id: str) -> SlideRecord:
        with self.session_factory() as session:
            slide = (
                session.query(Slide)
                .join(Presentation, Slide.presentation_id == Presentation.id)
                .filter(Slide.id == slide_id, Presentation.owner_id == owner_id)
                .first()
            )
            if slide is None:
                raise NotFoundError("Slide not found")
            return self._to_slide(slide)

    @staticmethod
    def _to_slide(slide: Slide) -> SlideRecord:
        return SlideRecord(
            id=slide.id,
            position=slide.position or 0,
            title=slide.title,
            blocks=list(slide.blocks or []),
        )

    @classmethod
    def _to_project(cls, presentation: Presentation) -> ProjectRecord:
        slides = sorted(presentation.slides, key=lambda s: s.position or 0)
        return ProjectRecord(
            id=presentation.id,
            owner_id=presentation.owner_id,
            title=presentation.title,
            theme=dict(presentation.theme or {}),
            slides=[cls._to_slide(slide) for slide in slides],
        )
