"""Export job bookkeeping.

Every state change is persisted immediately so that status polling only ever
reads stored state. Jobs move ``pending -> processing -> completed|failed``;
progress never decreases and reaches 100 only on completion.
"""

from collections.abc import Callable
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from models.database import VideoExportJob
from shared.enums import DEFAULT_SLIDE_DURATION, ExportStatus, SlideTransition
from shared.exceptions import InvalidJobTransition, NotFoundError
from shared.models import VideoExportJobResponse, VideoExportRequest
from shared.utils import config, setup_logging

logger = setup_logging("export-tracker")

MAX_ACTIVE_PROGRESS = 99


class ExportJobTracker:
    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory
        self.default_slide_duration = int(
            config.get_pipeline_value("pipelines.export.default_slide_duration", DEFAULT_SLIDE_DURATION)
        )

    def create(self, project_id: str, request: VideoExportRequest) -> VideoExportJobResponse:
        with self.session_factory() as session:
            job = VideoExportJob(
                project_id=project_id,
                format=request.format.value,
                resolution=request.resolution.value,
                include_narration=request.include_narration,
                slide_transition=(request.slide_transition or SlideTransition.FADE).value,
                slide_duration=request.slide_duration or self.default_slide_duration,
                narration_project_id=request.narration_project_id or None,
                status=ExportStatus.PENDING.value,
                progress=0,
            )
            session.add(job)
            session.commit()
            session.refresh(job)
            logger.info(f"Created export job {job.id} for project {project_id}")
            return self._to_response(job)

    def get(self, job_id: str) -> VideoExportJobResponse:
        """Return the persisted job state.

        Raises:
            NotFoundError: unknown id
        """
        with self.session_factory() as session:
            return self._to_response(self._load(session, job_id))

    def start(self, job_id: str) -> VideoExportJobResponse:
        """Move a job into ``processing``. Restarting a processing job is a no-op."""
        with self.session_factory() as session:
            job = self._load_active(session, job_id, "start")
            if job.status != ExportStatus.PROCESSING.value:
                job.status = ExportStatus.PROCESSING.value
                job.started_at = datetime.now(timezone.utc)
                session.commit()
                session.refresh(job)
            return self._to_response(job)

    def update_progress(self, job_id: str, progress: int) -> int:
        """Record progress, ignoring values lower than the stored one. Returns the stored value."""
        with self.session_factory() as session:
            job = self._load_active(session, job_id, "update progress of")
            value = max(0, min(MAX_ACTIVE_PROGRESS, int(progress)))
            if value > (job.progress or 0):
                job.progress = value
                session.commit()
            return job.progress

    def complete(self, job_id: str, output_url: str) -> VideoExportJobResponse:
        with self.session_factory() as session:
            job = self._load_active(session, job_id, "complete")
            job.status = ExportStatus.COMPLETED.value
            job.progress = 100
            job.output_url = output_url
            job.error = None
            job.completed_at = datetime.now(timezone.utc)
            session.commit()
            session.refresh(job)
            logger.info(f"Export job {job_id} completed: {output_url}")
            return self._to_response(job)

    def fail(self, job_id: str, error: str) -> VideoExportJobResponse:
        with self.session_factory() as session:
            job = self._load_active(session, job_id, "fail")
            job.status = ExportStatus.FAILED.value
            job.error = error
            job.completed_at = datetime.now(timezone.utc)
            session.commit()
            session.refresh(job)
            logger.error(f"Export job {job_id} failed: {error}")
            return self._to_response(job)

    @staticmethod
    def _load(session: Session, job_id: str) -> VideoExportJob:
        job = session.get(VideoExportJob, job_id)
        if job is None:
            raise NotFoundError("Export job not found")
        return job

    @classmethod
    def _load_active(cls, session: Session, job_id: str, action: str) -> VideoExportJob:
        job = cls._load(session, job_id)
        if ExportStatus(job.status).is_terminal:
            raise InvalidJobTransition(f"Cannot {action} export job {job_id}: already {job.status}")
        return job

    @staticmethod
    def _to_response(job: VideoExportJob) -> VideoExportJobResponse:
        return VideoExportJobResponse(
            id=job.id,
            project_id=job.project_id,
            format=job.format,
            resolution=job.resolution,
            include_narration=job.include_narration,
            slide_transition=job.slide_transition,
            slide_duration=job.slide_duration,
            narration_project_id=job.narration_project_id,
            status=ExportStatus(job.status),
            progress=job.progress or 0,
            output_url=job.output_url,
            error=job.error,
            created_at=job.created_at,
        )
