import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from models.database import NarrationProject, VideoExportJob
from services.export.assembler import VideoAssembler, resolve_dimensions
from services.export.encoder import FFmpegEncoder, ManifestEntry, write_concat_manifest
from services.export.slideshow import SlideshowEntry, build_slideshow_html
from services.storage.local import LocalArtifactStore
from shared.enums import ExportStatus, Resolution
from shared.exceptions import AssemblyFailure, NotFoundError, StorageFailure
from shared.models import VideoExportRequest

from conftest import OTHER_USER_ID, OWNER_ID


class FakeEncoder(FFmpegEncoder):
    """Encoder reported as installed that writes a small file instead of running ffmpeg."""

    def __init__(self, fail: bool = False):
        super().__init__(binary="ffmpeg", timeout=5)
        self.fail = fail
        self.encoded = []
        self.silences = []

    def is_available(self) -> bool:
        return True

    def render_silence(self, output_path: Path, seconds: float) -> Path:
        self.silences.append(seconds)
        output_path.write_bytes(b"silence")
        return output_path

    def encode(self, video_manifest, output_path, dimensions, output_format, audio_manifest=None):
        if self.fail:
            raise AssemblyFailure("ffmpeg encoding failed: Invalid data found when processing input")
        self.encoded.append(
            {
                "video": video_manifest.read_text(),
                "audio": audio_manifest.read_text() if audio_manifest else None,
                "dimensions": dimensions,
                "format": output_format,
            }
        )
        output_path.write_bytes(b"encoded-video")
        return output_path


@pytest.fixture
def make_assembler(pipeline, session_factory, artifact_store):
    def _make(encoder):
        return VideoAssembler(pipeline.content_store, pipeline.tracker, artifact_store, session_factory, encoder=encoder)

    return _make


@pytest.mark.parametrize(
    "resolution, expected",
    [
        ("720p", (1280, 720)),
        ("1080p", (1920, 1080)),
        ("4k", (3840, 2160)),
        (Resolution.UHD, (3840, 2160)),
        ("480p", (1920, 1080)),
        ("", (1920, 1080)),
        (None, (1920, 1080)),
    ],
)
def test_resolve_dimensions(resolution, expected):
    assert resolve_dimensions(resolution) == expected


def test_missing_binary_is_unavailable(missing_encoder):
    assert missing_encoder.is_available() is False


def test_concat_manifest_repeats_last_file(tmp_path):
    manifest = write_concat_manifest(
        [ManifestEntry("/tmp/a.png", 3), ManifestEntry("/tmp/b.png", 4.5)], tmp_path / "list.txt"
    )
    assert manifest.read_text().splitlines() == [
        "file '/tmp/a.png'",
        "duration 3.000",
        "file '/tmp/b.png'",
        "duration 4.500",
        "file '/tmp/b.png'",
    ]


def test_encoder_timeout_raises_assembly_failure(tmp_path):
    encoder = FFmpegEncoder(binary="ffmpeg", timeout=1)
    with patch("services.export.encoder.subprocess.run", side_effect=subprocess.TimeoutExpired("ffmpeg", 1)):
        with pytest.raises(AssemblyFailure, match="timed out"):
            encoder.encode(tmp_path / "v.txt", tmp_path / "out.mp4", (1280, 720), "mp4")


def test_encoder_nonzero_exit_raises_assembly_failure(tmp_path):
    encoder = FFmpegEncoder(binary="ffmpeg", timeout=1)
    result = MagicMock(returncode=1, stderr="line one\nUnknown encoder 'libx264'\n")
    with patch("services.export.encoder.subprocess.run", return_value=result) as run:
        with pytest.raises(AssemblyFailure, match="Unknown encoder"):
            encoder.encode(tmp_path / "v.txt", tmp_path / "out.mp4", (1280, 720), "mp4", tmp_path / "a.txt")
    cmd = run.call_args.args[0]
    assert "scale=1280:720:force_original_aspect_ratio=decrease" in " ".join(cmd)
    assert cmd[-1] == str(tmp_path / "out.mp4")


def test_slideshow_document():
    document = build_slideshow_html(
        "Deck <One>",
        [
            SlideshowEntry(1, "Intro", "Hello & welcome", 4.0, "/media/narrations/s1/a.mp3"),
            SlideshowEntry(2, "Close", "Bye </script>", 5.0),
        ],
        transition="slide",
    )
    assert "<title>Deck &lt;One&gt;</title>" in document
    assert "Hello &amp; welcome" in document
    assert "/media/narrations/s1/a.mp3" in document
    assert "Bye </script>" not in document
    assert "ArrowRight" in document and "ArrowLeft" in document
    assert "Pause" in document


def test_slideshow_resumes_audio_after_pause():
    document = build_slideshow_html("Deck", [SlideshowEntry(1, "Intro", "Hello", 4.0, "/media/a.mp3")])
    # the source is only reassigned when the slide changes, so play() after pause() resumes
    assert "if (audioSlide !== current)" in document
    assert document.count("audio.src =") == 1


@pytest.mark.asyncio
async def test_no_encoder_without_narration_completes_with_html(seeded_project, pipeline, media_root):
    job = pipeline.assembler.start_export(seeded_project, OWNER_ID, VideoExportRequest(include_narration=False))
    assert job.status == ExportStatus.PENDING

    done = await pipeline.assembler.run(job.id)

    assert done.status == ExportStatus.COMPLETED
    assert done.progress == 100
    assert done.output_url.startswith(f"/media/exports/{seeded_project}/")
    assert done.output_url.endswith(".html")
    html = (media_root / done.output_url.removeprefix("/media/")).read_text(encoding="utf-8")
    assert "Quarterly Review" in html
    assert "Mobile app. Billing v2. Reports" in html


@pytest.mark.asyncio
@pytest.mark.parametrize("export_format", ["mp4", "webm", "mp3"])
async def test_no_encoder_always_falls_back_to_html(seeded_project, pipeline, export_format):
    job = pipeline.assembler.start_export(
        seeded_project, OWNER_ID, VideoExportRequest(format=export_format, include_narration=True)
    )
    done = await pipeline.assembler.run(job.id)
    assert done.output_url.endswith(".html")
    assert not done.output_url.endswith(f".{export_format}")


@pytest.mark.asyncio
async def test_slideshow_embeds_narration_audio(seeded_project, pipeline, media_root):
    narration = await pipeline.orchestrator.start_narration(seeded_project, OWNER_ID)
    narrated = await pipeline.orchestrator.run_narration(narration.id)

    job = pipeline.assembler.start_export(seeded_project, OWNER_ID, VideoExportRequest(include_narration=True))
    done = await pipeline.assembler.run(job.id)

    html = (media_root / done.output_url.removeprefix("/media/")).read_text(encoding="utf-8")
    for slide in narrated.slides:
        assert slide.audio_url in html


@pytest.mark.asyncio
async def test_progress_is_monotonic(seeded_project, pipeline):
    recorded = []
    original = pipeline.tracker.update_progress

    def spy(job_id, progress):
        recorded.append(original(job_id, progress))
        return recorded[-1]

    pipeline.tracker.update_progress = spy
    job = pipeline.assembler.start_export(seeded_project, OWNER_ID, VideoExportRequest(include_narration=False))
    done = await pipeline.assembler.run(job.id)

    assert recorded == sorted(recorded)
    assert recorded[2] == 30
    assert max(recorded) < 100
    assert done.progress == 100


@pytest.mark.asyncio
async def test_encoder_path_builds_video(seeded_project, pipeline, make_assembler, media_root):
    narration = await pipeline.orchestrator.start_narration(seeded_project, OWNER_ID)
    narrated = await pipeline.orchestrator.run_narration(narration.id)
    encoder = FakeEncoder()
    assembler = make_assembler(encoder)

    job = pipeline.tracker.create(
        seeded_project,
        VideoExportRequest(format="webm", resolution="720p", include_narration=True, narration_project_id=narration.id),
    )
    done = await assembler.run(job.id)

    assert done.status == ExportStatus.COMPLETED
    assert done.output_url.endswith(".webm")
    assert (media_root / done.output_url.removeprefix("/media/")).read_bytes() == b"encoded-video"

    run = encoder.encoded[0]
    assert run["dimensions"] == (1280, 720)
    assert run["format"] == "webm"
    assert run["video"].count("slide_") == 4
    first_duration = narrated.slides[0].duration
    assert f"duration {first_duration:.3f}" in run["video"]
    # third slide has no narration and is held for the default duration with silence
    assert "duration 5.000" in run["video"]
    assert encoder.silences == [5.0]


@pytest.mark.asyncio
async def test_encoder_failure_fails_job(seeded_project, pipeline, make_assembler):
    job = pipeline.tracker.create(seeded_project, VideoExportRequest(include_narration=True))

    with pytest.raises(AssemblyFailure):
        await make_assembler(FakeEncoder(fail=True)).run(job.id)

    failed = pipeline.tracker.get(job.id)
    assert failed.status == ExportStatus.FAILED
    assert "Invalid data found" in failed.error
    assert failed.progress < 100
    assert failed.output_url is None


@pytest.mark.asyncio
async def test_temporary_directory_is_removed(seeded_project, pipeline, tmp_path):
    created = []
    import tempfile

    real_mkdtemp = tempfile.mkdtemp

    def tracking_mkdtemp(*args, **kwargs):
        path = real_mkdtemp(*args, dir=tmp_path, **kwargs)
        created.append(Path(path))
        return path

    with patch("services.export.assembler.tempfile.mkdtemp", side_effect=tracking_mkdtemp):
        job = pipeline.assembler.start_export(seeded_project, OWNER_ID, VideoExportRequest(include_narration=False))
        await pipeline.assembler.run(job.id)

    assert created and not created[0].exists()


@pytest.mark.asyncio
async def test_finished_jobs_are_not_rerun(seeded_project, pipeline):
    job = pipeline.assembler.start_export(seeded_project, OWNER_ID, VideoExportRequest(include_narration=False))
    first = await pipeline.assembler.run(job.id)
    second = await pipeline.assembler.run(job.id)
    assert second.output_url == first.output_url


def test_export_requires_ownership(seeded_project, pipeline):
    with pytest.raises(NotFoundError):
        pipeline.assembler.start_export(seeded_project, OTHER_USER_ID, VideoExportRequest())


class RejectingStore(LocalArtifactStore):
    def store(self, data, content_type, key):
        raise StorageFailure("Upload rejected: bucket unavailable")


@pytest.mark.asyncio
async def test_storage_failure_fails_export_job(
    seeded_project, pipeline, session_factory, media_root, missing_encoder
):
    assembler = VideoAssembler(
        pipeline.content_store, pipeline.tracker, RejectingStore(media_root), session_factory, encoder=missing_encoder
    )
    job = assembler.start_export(seeded_project, OWNER_ID, VideoExportRequest(include_narration=False))

    with pytest.raises(StorageFailure):
        await assembler.run(job.id)

    failed = pipeline.tracker.get(job.id)
    assert failed.status == ExportStatus.FAILED
    assert failed.error == "Upload rejected: bucket unavailable"
    assert failed.progress < 100
    assert failed.output_url is None


def test_export_rejects_unknown_narration(seeded_project, pipeline, session_factory):
    request = VideoExportRequest(include_narration=True, narration_project_id="does-not-exist")

    with pytest.raises(NotFoundError):
        pipeline.assembler.start_export(seeded_project, OWNER_ID, request)

    with session_factory() as session:
        assert session.query(VideoExportJob).count() == 0


def test_export_rejects_narration_of_another_project(seeded_project, pipeline, session_factory):
    with session_factory() as session:
        foreign = NarrationProject(
            project_id="other-project", voice="alloy", speed=1.0, status="completed", total_duration=0.0
        )
        session.add(foreign)
        session.commit()
        foreign_id = foreign.id

    with pytest.raises(NotFoundError):
        pipeline.assembler.start_export(
            seeded_project, OWNER_ID, VideoExportRequest(include_narration=True, narration_project_id=foreign_id)
        )
