"""Narration text to audio bytes via the configured TTS engine."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from services.tts_service.drivers.base import TTSEngine
from shared.enums import MAX_SPEED, MIN_SPEED, VoiceGender, VoiceId
from shared.exceptions import ProviderFailure
from shared.models import VoiceOption
from shared.utils import clamp_float, config, count_words, setup_logging

logger = setup_logging("speech-synthesizer")

WORDS_PER_MINUTE = 150

VOICE_OPTIONS: list[VoiceOption] = [
    VoiceOption(id=VoiceId.ALLOY, name="Alloy", description="Neutral and balanced",
                gender=VoiceGender.NEUTRAL, style="professional"),
    VoiceOption(id=VoiceId.ECHO, name="Echo", description="Warm and engaging",
                gender=VoiceGender.MALE, style="conversational"),
    VoiceOption(id=VoiceId.FABLE, name="Fable", description="Expressive and dynamic",
                gender=VoiceGender.NEUTRAL, style="storytelling"),
    VoiceOption(id=VoiceId.ONYX, name="Onyx", description="Deep and authoritative",
                gender=VoiceGender.MALE, style="formal"),
    VoiceOption(id=VoiceId.NOVA, name="Nova", description="Friendly and upbeat",
                gender=VoiceGender.FEMALE, style="casual"),
    VoiceOption(id=VoiceId.SHIMMER, name="Shimmer", description="Clear and professional",
                gender=VoiceGender.FEMALE, style="business"),
]


def estimate_duration(text: str, speed: float = 1.0, words_per_minute: int = WORDS_PER_MINUTE) -> int:
    """Spoken duration in whole seconds at ``words_per_minute`` scaled by ``speed``."""
    speed = clamp_float(speed, default=1.0, minimum=MIN_SPEED, maximum=MAX_SPEED)
    seconds = count_words(text) / words_per_minute * 60 / speed
    # half-up, not banker's rounding
    return int(seconds + 0.5)


@dataclass(frozen=True)
class SynthesizedSpeech:
    audio: bytes
    content_type: str
    duration: float
    extension: str = "mp3"


class SpeechSynthesizer:
    """Wraps a TTS engine with a deadline and a duration fallback."""

    def __init__(self, engine: TTSEngine, timeout: float | None = None) -> None:
        self.engine = engine
        self.timeout = timeout if timeout is not None else float(config.get("provider_timeout", 60))
        self.words_per_minute = int(
            config.get_pipeline_value("pipelines.narration.words_per_minute", WORDS_PER_MINUTE)
        )

    @staticmethod
    def voice_options() -> list[VoiceOption]:
        return list(VOICE_OPTIONS)

    async def synthesize(self, slide_id: str, text: str, voice: str, speed: float = 1.0) -> SynthesizedSpeech:
        """Synthesize ``text`` for a slide.

        Raises:
            ProviderFailure: the engine failed, returned no audio, or missed the deadline
        """
        voice_value = voice.value if isinstance(voice, VoiceId) else str(voice)
        try:
            result = await asyncio.wait_for(
                self.engine.synthesize(text=text, voice=voice_value, speed=speed, output_format="mp3"),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.error(f"Speech synthesis for slide {slide_id} exceeded {self.timeout}s")
            raise ProviderFailure(f"Speech synthesis timed out after {self.timeout}s") from exc
        except ProviderFailure:
            raise
        except Exception as exc:
            logger.error(f"Speech synthesis failed for slide {slide_id}: {exc}")
            raise ProviderFailure(f"Speech synthesis failed: {exc}") from exc

        audio = result.get("audio") or b""
        if not audio:
            raise ProviderFailure(f"Speech provider returned no audio for slide {slide_id}")

        reported = result.get("duration")
        if reported:
            duration = float(reported)
        else:
            duration = float(estimate_duration(text, speed, self.words_per_minute))

        return SynthesizedSpeech(
            audio=audio,
            content_type=result.get("content_type", "audio/mpeg"),
            duration=duration,
            extension=result.get("output_format", "mp3"),
        )
