"""
Artifact storage for generated narration audio and export outputs.

Provides an abstract store and implementations for a local directory and
S3-compatible object storage. ``create_artifact_store`` picks S3 when a bucket
is configured and the local directory otherwise.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from uuid import uuid4

from shared.utils import config, sanitize_filename

NARRATION_PREFIX = "narrations"
EXPORT_PREFIX = "exports"


def build_artifact_key(prefix: str, owner_id: str, extension: str) -> str:
    """Return ``<prefix>/<owner_id>/<token>.<extension>`` with a fresh uuid token.

    The owner is the slide id for narration audio and the project id for
    exports, so every run writes a distinct object that can be collected by prefix.
    """
    ext = extension.lower().lstrip(".")
    owner = sanitize_filename(str(owner_id)) or "unknown"
    return f"{prefix}/{owner}/{uuid4().hex}.{ext}"


class ArtifactStore(ABC):
    """Abstract base class for artifact stores."""

    @abstractmethod
    def store(self, data: bytes, content_type: str, key: str) -> str:
        """Persist ``data`` under ``key`` and return a retrievable URL.

        Raises:
            StorageFailure: the write or upload failed
        """

    def store_file(self, file_path: str | Path, content_type: str, key: str) -> str:
        """Persist a file from disk. Implementations may stream instead of reading it whole."""
        return self.store(Path(file_path).read_bytes(), content_type, key)

    def local_path(self, url: str) -> Path | None:
        """Filesystem path of a stored artifact, or None when it is only reachable by URL."""
        return None


def create_artifact_store() -> ArtifactStore:
    """Create the artifact store described by the service configuration."""
    bucket = config.get("s3_bucket")
    if bucket:
        from .s3 import S3ArtifactStore

        return S3ArtifactStore(
            bucket_name=bucket,
            region_name=config.get("s3_region"),
            endpoint_url=config.get("s3_endpoint_url"),
            public_base_url=config.get("s3_public_base_url"),
        )

    from .local import LocalArtifactStore

    return LocalArtifactStore(
        base_path=config.get("media_root", "./media"),
        base_url=config.get("media_url_prefix", "/media"),
    )
