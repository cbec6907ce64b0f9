import asyncio
from typing import Any

import pytest

from services.narration.speech import SpeechSynthesizer, estimate_duration
from services.tts_service.drivers.base import TTSEngine
from shared.enums import VoiceId
from shared.exceptions import ProviderFailure

from conftest import FakeTTSEngine


class ReportingEngine(TTSEngine):
    async def synthesize(self, text: str, voice: str = "alloy", speed: float = 1.0,
                         output_format: str = "mp3", **kwargs: Any) -> dict[str, Any]:
        return {"audio": b"abc", "content_type": "audio/mpeg", "duration": 7.25}


class SilentEngine(TTSEngine):
    async def synthesize(self, text: str, voice: str = "alloy", speed: float = 1.0,
                         output_format: str = "mp3", **kwargs: Any) -> dict[str, Any]:
        return {"audio": b"", "content_type": "audio/mpeg"}


class SlowEngine(TTSEngine):
    async def synthesize(self, text: str, voice: str = "alloy", speed: float = 1.0,
                         output_format: str = "mp3", **kwargs: Any) -> dict[str, Any]:
        await asyncio.sleep(1)
        return {"audio": b"late"}


def test_estimate_duration():
    text = " ".join(["word"] * 150)
    assert estimate_duration(text) == 60
    assert estimate_duration(text, speed=2.0) == 30
    assert estimate_duration("one two three four five") == 2
    assert estimate_duration("") == 0


def test_estimate_duration_clamps_speed():
    text = " ".join(["word"] * 150)
    assert estimate_duration(text, speed=100) == 15
    assert estimate_duration(text, speed=0) == 240


def test_voice_catalogue():
    voices = SpeechSynthesizer.voice_options()
    assert [v.id for v in voices] == list(VoiceId)
    alloy = voices[0]
    assert alloy.name == "Alloy"
    assert alloy.style == "professional"


@pytest.mark.asyncio
async def test_synthesize_uses_estimate_when_no_duration_reported():
    engine = FakeTTSEngine()
    speech = await SpeechSynthesizer(engine, timeout=5).synthesize("slide-1", "one two three four five", "nova", 1.0)
    assert speech.audio == b"ID3-fake-audio"
    assert speech.duration == 2
    assert engine.calls[0]["voice"] == "nova"


@pytest.mark.asyncio
async def test_synthesize_prefers_reported_duration():
    speech = await SpeechSynthesizer(ReportingEngine(), timeout=5).synthesize("s", "some words here", VoiceId.ECHO)
    assert speech.duration == 7.25


@pytest.mark.asyncio
async def test_provider_errors_become_provider_failure():
    engine = FakeTTSEngine(fail_texts={"boom boom boom"})
    with pytest.raises(ProviderFailure):
        await SpeechSynthesizer(engine, timeout=5).synthesize("s", "boom boom boom", "alloy")


@pytest.mark.asyncio
async def test_empty_audio_is_a_failure():
    with pytest.raises(ProviderFailure):
        await SpeechSynthesizer(SilentEngine(), timeout=5).synthesize("s", "anything at all", "alloy")


@pytest.mark.asyncio
async def test_deadline_exceeded_is_a_failure():
    with pytest.raises(ProviderFailure, match="timed out"):
        await SpeechSynthesizer(SlowEngine(), timeout=0.05).synthesize("s", "anything at all", "alloy")
