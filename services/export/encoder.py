"""ffmpeg wrapper used to turn slide stills and narration audio into a video."""

import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

from shared.exceptions import AssemblyFailure
from shared.utils import config, setup_logging

logger = setup_logging("video-encoder")

VIDEO_CODECS = {
    "mp4": ["-c:v", "libx264", "-preset", "fast", "-crf", "23", "-pix_fmt", "yuv420p", "-c:a", "aac", "-b:a", "192k"],
    "webm": ["-c:v", "libvpx-vp9", "-b:v", "0", "-crf", "32", "-pix_fmt", "yuv420p", "-c:a", "libopus"],
}
AUDIO_ONLY_CODECS = {
    "mp3": ["-vn", "-c:a", "libmp3lame", "-b:a", "192k"],
}
REMOTE_PROTOCOLS = "file,http,https,tcp,tls,crypto"


@dataclass
class ManifestEntry:
    path: str
    duration: float


def write_concat_manifest(entries: list[ManifestEntry], manifest_path: Path) -> Path:
    """Write an ffmpeg concat-demuxer manifest.

    The last file is listed twice because the demuxer ignores the duration of
    the final entry.
    """
    lines = []
    for entry in entries:
        path_str = entry.path.replace("\\", "/").replace("'", "'\\''")
        lines.append(f"file '{path_str}'")
        lines.append(f"duration {entry.duration:.3f}")
    if entries:
        last = entries[-1].path.replace("\\", "/").replace("'", "'\\''")
        lines.append(f"file '{last}'")

    manifest_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return manifest_path


class FFmpegEncoder:
    def __init__(self, binary: str | None = None, timeout: float | None = None, frame_rate: int | None = None):
        self.binary = binary or config.get("ffmpeg_binary", "ffmpeg")
        self.timeout = timeout if timeout is not None else float(config.get("encoder_timeout", 600))
        self.frame_rate = frame_rate or int(config.get_pipeline_value("pipelines.export.frame_rate", 30))

    def is_available(self) -> bool:
        """Whether the ffmpeg binary can be found on PATH."""
        return shutil.which(self.binary) is not None

    def _run(self, cmd: list[str], action: str) -> None:
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except subprocess.TimeoutExpired as e:
            raise AssemblyFailure(f"ffmpeg {action} timed out after {self.timeout}s") from e
        except OSError as e:
            raise AssemblyFailure(f"ffmpeg {action} could not be started: {e}") from e

        if result.returncode != 0:
            stderr = (result.stderr or "").strip().splitlines()
            detail = stderr[-1] if stderr else f"exit code {result.returncode}"
            raise AssemblyFailure(f"ffmpeg {action} failed: {detail}")

    def render_silence(self, output_path: Path, seconds: float) -> Path:
        """Write a silent mp3 clip, used for slides without narration."""
        cmd = [
            self.binary, "-y",
            "-f", "lavfi", "-i", "anullsrc=r=24000:cl=mono",
            "-t", f"{seconds:.3f}",
            "-c:a", "libmp3lame", "-b:a", "64k",
            str(output_path),
        ]
        self._run(cmd, "silence rendering")
        return output_path

    def encode(
        self,
        video_manifest: Path,
        output_path: Path,
        dimensions: tuple[int, int],
        output_format: str,
        audio_manifest: Path | None = None,
    ) -> Path:
        """Encode the still sequence (and optional audio sequence) into ``output_path``.

        Raises:
            AssemblyFailure: unsupported format, non-zero exit, or deadline exceeded
        """
        width, height = dimensions
        concat_input = ["-f", "concat", "-safe", "0", "-protocol_whitelist", REMOTE_PROTOCOLS]

        if output_format in AUDIO_ONLY_CODECS:
            if audio_manifest is None:
                raise AssemblyFailure(f"{output_format} export requires narration audio")
            cmd = [self.binary, "-y", *concat_input, "-i", str(audio_manifest), *AUDIO_ONLY_CODECS[output_format]]
        elif output_format in VIDEO_CODECS:
            cmd = [self.binary, "-y", *concat_input, "-i", str(video_manifest)]
            if audio_manifest is not None:
                cmd += [*concat_input, "-i", str(audio_manifest), "-map", "0:v", "-map", "1:a"]
            cmd += [
                "-vf", f"scale={width}:{height}:force_original_aspect_ratio=decrease,"
                       f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2:black,fps={self.frame_rate}",
                *VIDEO_CODECS[output_format],
            ]
            if audio_manifest is not None:
                cmd.append("-shortest")
        else:
            raise AssemblyFailure(f"Unsupported export format: {output_format}")

        cmd.append(str(output_path))
        self._run(cmd, "encoding")
        logger.info(f"Encoded {output_format} to {output_path}")
        return output_path
