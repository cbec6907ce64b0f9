"""Video assembler: builds the export deliverable for a presentation.

With ffmpeg available and narration requested, slides are rendered to stills
and encoded together with the narration audio. Otherwise the deliverable is a
self-contained HTML slideshow.
"""

import asyncio
import shutil
import tempfile
from collections.abc import Callable
from pathlib import Path

from sqlalchemy.orm import Session

from models.database import NarrationProject
from services.content_store import ContentStore, ProjectRecord
from services.export.encoder import FFmpegEncoder, ManifestEntry, write_concat_manifest
from services.export.renderer import render_slide_image
from services.export.slideshow import HTML_CONTENT_TYPE, SlideshowEntry, build_slideshow_html
from services.export.tracker import ExportJobTracker
from services.narration.content import extract_slide_content
from services.queue import JOB_QUEUE_KEY, VIDEO_EXPORT_JOB, QueueManager
from services.storage import EXPORT_PREFIX, ArtifactStore, build_artifact_key
from shared.enums import RESOLUTION_DIMENSIONS, NarrationStatus, Resolution
from shared.exceptions import NotFoundError, PipelineError
from shared.models import VideoExportJobResponse, VideoExportRequest
from shared.utils import config, setup_logging

logger = setup_logging("video-assembler")

OUTPUT_CONTENT_TYPES = {
    "mp4": "video/mp4",
    "webm": "video/webm",
    "mp3": "audio/mpeg",
}


def resolve_dimensions(resolution: Resolution | str | None) -> tuple[int, int]:
    """Pixel dimensions for a resolution label; unknown labels get 1080p."""
    key = resolution.value if isinstance(resolution, Resolution) else str(resolution)
    return RESOLUTION_DIMENSIONS.get(key, RESOLUTION_DIMENSIONS[Resolution.FULL_HD.value])


class VideoAssembler:
    def __init__(
        self,
        content_store: ContentStore,
        tracker: ExportJobTracker,
        artifact_store: ArtifactStore,
        session_factory: Callable[[], Session],
        encoder: FFmpegEncoder | None = None,
        queue_manager: QueueManager | None = None,
        queue_key: str = JOB_QUEUE_KEY,
    ):
        self.content_store = content_store
        self.tracker = tracker
        self.artifact_store = artifact_store
        self.session_factory = session_factory
        self.encoder = encoder or FFmpegEncoder()
        self.queue_manager = queue_manager
        self.queue_key = queue_key
        self.image_phase_share = int(config.get_pipeline_value("pipelines.export.image_phase_share", 30))

    def start_export(self, project_id: str, user_id: str, request: VideoExportRequest) -> VideoExportJobResponse:
        """Create a pending export job and queue it.

        Raises:
            NotFoundError: project missing or not owned by ``user_id``, or the
                referenced narration does not belong to the project
        """
        self.content_store.get_project(project_id, owner_id=user_id)
        if request.narration_project_id:
            self._check_narration(project_id, request.narration_project_id)
        job = self.tracker.create(project_id, request)

        if self.queue_manager is not None:
            try:
                self.queue_manager.submit(self.queue_key, VIDEO_EXPORT_JOB, {"job_id": job.id}, item_id=job.id)
            except ConnectionError as e:
                self.tracker.fail(job.id, f"Could not queue export: {e}")
                raise

        return job

    def _check_narration(self, project_id: str, narration_project_id: str) -> None:
        with self.session_factory() as session:
            narration = session.get(NarrationProject, narration_project_id)
            if narration is None or narration.project_id != project_id:
                raise NotFoundError("Narration project not found")

    async def run(self, job_id: str, final_attempt: bool = True) -> VideoExportJobResponse:
        """Assemble the deliverable for a job and record the outcome.

        A job that already reached a terminal state is returned unchanged.
        Pipeline errors fail the job at once; other errors fail it only when
        no retry will follow. The error is re-raised in both cases.
        """
        job = self.tracker.get(job_id)
        if job.status.is_terminal:
            logger.info(f"Export job {job_id} already {job.status.value}, skipping")
            return job

        job = self.tracker.start(job_id)
        try:
            output_url = await asyncio.to_thread(self._assemble, job)
        except Exception as e:
            logger.error(f"Video export job {job_id} failed: {e}")
            if final_attempt or isinstance(e, PipelineError):
                self.tracker.fail(job_id, str(e))
            raise

        return self.tracker.complete(job_id, output_url)

    def _assemble(self, job: VideoExportJobResponse) -> str:
        project = self.content_store.get_project(job.project_id)
        dimensions = resolve_dimensions(job.resolution)
        encoder_available = self.encoder.is_available()
        narration = self._load_narration(job) if job.include_narration else {}

        temp_dir = Path(tempfile.mkdtemp(prefix=f"export_{job.id}_"))
        try:
            images = self._render_images(job.id, project, dimensions, temp_dir)

            if encoder_available and job.include_narration and project.slides:
                return self._encode_video(job, project, images, narration, dimensions, temp_dir)

            if not encoder_available:
                logger.info(f"ffmpeg not found, exporting job {job.id} as HTML slideshow")
            return self._build_slideshow(job, project, narration, dimensions)
        finally:
            shutil.rmtree(temp_dir, ignore_errors=True)

    def _load_narration(self, job: VideoExportJobResponse) -> dict[str, tuple[str | None, float | None]]:
        """Map slide id to (audio url, duration) from the referenced or latest completed narration."""
        with self.session_factory() as session:
            if job.narration_project_id:
                narration = session.get(NarrationProject, job.narration_project_id)
            else:
                narration = (
                    session.query(NarrationProject)
                    .filter(
                        NarrationProject.project_id == job.project_id,
                        NarrationProject.status == NarrationStatus.COMPLETED.value,
                    )
                    .order_by(NarrationProject.created_at.desc())
                    .first()
                )
            if narration is None:
                return {}
            return {slide.slide_id: (slide.audio_url, slide.duration) for slide in narration.slides}

    def _render_images(
        self,
        job_id: str,
        project: ProjectRecord,
        dimensions: tuple[int, int],
        temp_dir: Path,
    ) -> list[Path]:
        images = []
        total = len(project.slides)
        for index, slide in enumerate(project.slides):
            path = temp_dir / f"slide_{index + 1:04d}.png"
            images.append(render_slide_image(slide, index + 1, dimensions, path, project.theme))
            self.tracker.update_progress(job_id, round((index + 1) / total * self.image_phase_share))
        return images

    def _slide_duration(self, job: VideoExportJobResponse, narration_entry) -> float:
        if narration_entry and narration_entry[1]:
            return float(narration_entry[1])
        return float(job.slide_duration)

    def _encode_video(
        self,
        job: VideoExportJobResponse,
        project: ProjectRecord,
        images: list[Path],
        narration: dict,
        dimensions: tuple[int, int],
        temp_dir: Path,
    ) -> str:
        video_entries = []
        audio_entries = []
        for index, (slide, image) in enumerate(zip(project.slides, images)):
            entry = narration.get(slide.id)
            duration = self._slide_duration(job, entry)
            video_entries.append(ManifestEntry(str(image.resolve()), duration))

            audio_url = entry[0] if entry else None
            if audio_url:
                local = self.artifact_store.local_path(audio_url)
                audio_entries.append(ManifestEntry(str(local.resolve()) if local else audio_url, duration))
            else:
                silence = temp_dir / f"silence_{index + 1:04d}.mp3"
                self.encoder.render_silence(silence, duration)
                audio_entries.append(ManifestEntry(str(silence.resolve()), duration))

        video_manifest = write_concat_manifest(video_entries, temp_dir / "video.txt")
        audio_manifest = write_concat_manifest(audio_entries, temp_dir / "audio.txt")
        self.tracker.update_progress(job.id, self.image_phase_share + 10)

        output_path = temp_dir / f"output.{job.format}"
        self.encoder.encode(video_manifest, output_path, dimensions, job.format, audio_manifest=audio_manifest)
        self.tracker.update_progress(job.id, 90)

        key = build_artifact_key(EXPORT_PREFIX, job.project_id, job.format)
        content_type = OUTPUT_CONTENT_TYPES.get(job.format, "application/octet-stream")
        return self.artifact_store.store_file(output_path, content_type, key)

    def _build_slideshow(
        self,
        job: VideoExportJobResponse,
        project: ProjectRecord,
        narration: dict,
        dimensions: tuple[int, int],
    ) -> str:
        entries = []
        for index, slide in enumerate(project.slides):
            entry = narration.get(slide.id)
            entries.append(
                SlideshowEntry(
                    number=index + 1,
                    title=slide.title or f"Slide {index + 1}",
                    text=extract_slide_content(slide.blocks),
                    duration=self._slide_duration(job, entry),
                    audio_url=entry[0] if entry else None,
                )
            )

        document = build_slideshow_html(project.title, entries, job.slide_transition, dimensions)
        self.tracker.update_progress(job.id, 60)

        key = build_artifact_key(EXPORT_PREFIX, job.project_id, "html")
        url = self.artifact_store.store(document.encode("utf-8"), HTML_CONTENT_TYPE, key)
        self.tracker.update_progress(job.id, 90)
        return url
