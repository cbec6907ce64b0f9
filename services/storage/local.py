"""
Local filesystem artifact store.

Used for development and whenever no object-storage bucket is configured.
"""

import logging
import shutil
from pathlib import Path

from shared.exceptions import StorageFailure

from . import ArtifactStore

logger = logging.getLogger(__name__)


class LocalArtifactStore(ArtifactStore):
    """Write artifacts below ``base_path`` and serve them under ``base_url``."""

    def __init__(self, base_path: str | Path, base_url: str = "/media"):
        """Initialize local storage.

        Args:
            base_path: Base directory for artifact files
            base_url: URL prefix the web server maps onto ``base_path``
        """
        self.base_path = Path(base_path)
        self.base_url = base_url.rstrip("/")

    def _destination(self, key: str) -> Path:
        dest_path = (self.base_path / key).resolve()
        base = self.base_path.resolve()
        if base not in dest_path.parents:
            raise StorageFailure(f"Artifact key escapes storage root: {key}")
        return dest_path

    def url_for(self, key: str) -> str:
        return f"{self.base_url}/{key}"

    def path_for(self, url_or_key: str) -> Path:
        """Map a URL returned by :meth:`store` back to its file."""
        key = url_or_key
        if key.startswith(self.base_url + "/"):
            key = key[len(self.base_url) + 1:]
        return self.base_path / key.lstrip("/")

    def local_path(self, url: str) -> Path | None:
        if url.startswith(("http://", "https://")):
            return None
        path = self.path_for(url)
        return path if path.exists() else None

    def store(self, data: bytes, content_type: str, key: str) -> str:
        """Write bytes to the local directory, creating parents as needed."""
        dest_path = self._destination(key)
        try:
            dest_path.parent.mkdir(parents=True, exist_ok=True)
            with open(dest_path, "wb") as f:
                f.write(data)
        except OSError as e:
            logger.error(f"Error writing artifact {dest_path}: {e}")
            raise StorageFailure(f"Failed to write artifact {key}: {e}") from e

        logger.debug(f"Stored {len(data)} bytes ({content_type}) at {dest_path}")
        return self.url_for(key)

    def store_file(self, file_path: str | Path, content_type: str, key: str) -> str:
        """Copy a file into the local directory."""
        dest_path = self._destination(key)
        try:
            dest_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(file_path, dest_path)
        except OSError as e:
            logger.error(f"Error copying {file_path} to {dest_path}: {e}")
            raise StorageFailure(f"Failed to store artifact {key}: {e}") from e

        return self.url_for(key)
