from abc import ABC, abstractmethod
from typing import Any


class TTSEngine(ABC):
    """Abstract base class for TTS engines."""

    @abstractmethod
    async def synthesize(
        self,
        text: str,
        voice: str = "alloy",
        speed: float = 1.0,
        output_format: str = "mp3",
        **kwargs: Any,
    ) -> dict[str, Any]:
        """Synthesize speech from text.

        Returns a dict with ``audio`` (raw bytes), ``content_type`` and, when the
        provider reports one, an authoritative ``duration`` in seconds.
        """
        pass
