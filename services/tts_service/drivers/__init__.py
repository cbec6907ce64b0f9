"""TTS driver implementations"""

from .base import TTSEngine
from .openai_tts import OpenAITTSEngine

__all__ = ["OpenAITTSEngine", "TTSEngine"]
