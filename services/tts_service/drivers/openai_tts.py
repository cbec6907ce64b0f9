from typing import Any, ClassVar

from openai import AsyncOpenAI

from shared.openai_client import create_openai_client
from shared.utils import config

from .base import TTSEngine

CONTENT_TYPES = {
    "mp3": "audio/mpeg",
    "opus": "audio/ogg",
    "aac": "audio/aac",
    "flac": "audio/flac",
    "wav": "audio/wav",
}


class OpenAITTSEngine(TTSEngine):
    """OpenAI TTS implementation using their text-to-speech API."""

    SUPPORTED_MODELS: ClassVar[list[str]] = ["tts-1", "tts-1-hd"]
    SUPPORTED_VOICES: ClassVar[list[str]] = ["alloy", "echo", "fable", "onyx", "nova", "shimmer"]
    SUPPORTED_FORMATS: ClassVar[list[str]] = list(CONTENT_TYPES)

    def __init__(self, client: AsyncOpenAI | None = None, model: str | None = None):
        """
        Initialize OpenAI TTS engine.

        Args:
            client: Preconfigured client (built from OPENAI_API_KEY when omitted)
            model: TTS model, ``tts-1-hd`` unless configured otherwise
        """
        self.client = client or create_openai_client(async_client=True)
        self.model = model or config.get("tts_model", "tts-1-hd")

    async def synthesize(
        self,
        text: str,
        voice: str = "alloy",
        speed: float = 1.0,
        output_format: str = "mp3",
        **kwargs: Any,
    ) -> dict[str, Any]:
        """
        Synthesize speech from text using OpenAI TTS.

        Args:
            text: Text to convert to speech
            voice: Voice to use (alloy, echo, fable, onyx, nova, shimmer)
            speed: Speech speed (0.25 to 4.0)
            output_format: Audio format (mp3, opus, aac, flac, wav)
            **kwargs: Additional options
                - model: TTS model to use ("tts-1" or "tts-1-hd")

        Returns:
            Dictionary with the audio bytes and content type
        """
        if voice not in self.SUPPORTED_VOICES:
            voice = "alloy"

        if output_format not in self.SUPPORTED_FORMATS:
            output_format = "mp3"

        speed = max(0.25, min(4.0, speed))

        model = kwargs.get("model", self.model)
        if model not in self.SUPPORTED_MODELS:
            model = "tts-1-hd"

        response = await self.client.audio.speech.create(
            model=model,
            voice=voice,
            input=text,
            response_format=output_format,
            speed=speed,
        )

        return {
            "audio": response.content,
            "content_type": CONTENT_TYPES[output_format],
            "output_format": output_format,
            "voice_used": voice,
            "model": model,
            "speed": speed,
        }
