import os
import sys
from pathlib import Path
from typing import Any, Callable, Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

# Keep the module-level engine off the working directory
os.environ.setdefault("DATABASE_URL", "sqlite://")

from database import Base
from models.database import Presentation, Slide, SpeakerNote
from services.export.encoder import FFmpegEncoder
from services.pipeline import Pipeline, build_pipeline
from services.queue import QueueManager
from services.queue import redis as redis_module
from services.storage.local import LocalArtifactStore
from services.text_generation.drivers import TextGenerationDriver
from services.tts_service.drivers.base import TTSEngine
from shared.utils import config as service_config

OWNER_ID = "user-1"
OTHER_USER_ID = "user-2"
PROJECT_ID = "project-1"
SLIDE_IDS = ["slide-1", "slide-2", "slide-3"]

SLIDE_ONE_NOTES = "Welcome everyone to the quarterly roadmap review."
SLIDE_TWO_NOTES = "Next we look at the three launches planned for spring."


class DummyRedis:
    """In-memory stand-in for the list and sorted-set commands the queue uses."""

    def __init__(self) -> None:
        self._lists: dict[str, list[str]] = {}
        self._zsets: dict[str, dict[str, float]] = {}

    def ping(self) -> bool:
        return True

    def rpush(self, key: str, value: str) -> int:
        self._lists.setdefault(key, []).append(value)
        return len(self._lists[key])

    def lpush(self, key: str, value: str) -> int:
        self._lists.setdefault(key, []).insert(0, value)
        return len(self._lists[key])

    def lpop(self, key: str):
        queue = self._lists.get(key)
        if not queue:
            return None
        return queue.pop(0)

    def llen(self, key: str) -> int:
        return len(self._lists.get(key, []))

    def lrange(self, key: str, start: int, end: int) -> list[str]:
        items = self._lists.get(key, [])
        return items[start:] if end == -1 else items[start : end + 1]

    def lmove(self, source: str, destination: str, src: str = "LEFT", dest: str = "RIGHT"):
        queue = self._lists.get(source)
        if not queue:
            return None
        value = queue.pop(0) if src == "LEFT" else queue.pop()
        target = self._lists.setdefault(destination, [])
        if dest == "LEFT":
            target.insert(0, value)
        else:
            target.append(value)
        return value

    def lrem(self, key: str, count: int, value: str) -> int:
        queue = self._lists.get(key, [])
        removed = 0
        while value in queue and (count == 0 or removed < abs(count)):
            queue.remove(value)
            removed += 1
        return removed

    def zadd(self, key: str, mapping: dict[str, float], nx: bool = False, xx: bool = False) -> int:
        zset = self._zsets.setdefault(key, {})
        added = 0
        for member, score in mapping.items():
            exists = member in zset
            if (nx and exists) or (xx and not exists):
                continue
            added += 0 if exists else 1
            zset[member] = score
        return added

    def zscore(self, key: str, member: str):
        return self._zsets.get(key, {}).get(member)

    def zrangebyscore(self, key: str, minimum: Any, maximum: Any) -> list[str]:
        low, high = float(minimum), float(maximum)
        zset = self._zsets.get(key, {})
        return [m for m, score in sorted(zset.items(), key=lambda kv: kv[1]) if low <= score <= high]

    def zrem(self, key: str, *members: str) -> int:
        zset = self._zsets.get(key, {})
        return sum(1 for member in members if zset.pop(member, None) is not None)

    def zcard(self, key: str) -> int:
        return len(self._zsets.get(key, {}))


class FakeTextDriver(TextGenerationDriver):
    """Returns canned notes; raises for the slide numbers listed in ``fail_slides``."""

    def __init__(self, fail_slides: set[int] | None = None) -> None:
        self.fail_slides = fail_slides or set()
        self.prompts: list[str] = []

    async def generate(self, prompt: str, system_prompt: str | None = None, **kwargs: Any) -> str:
        self.prompts.append(prompt)
        slide_number = len(self.prompts)
        if slide_number in self.fail_slides:
            raise RuntimeError("provider unavailable")
        return f"Generated notes for slide {slide_number} ... [EMPHASIS] key point"


class FakeTTSEngine(TTSEngine):
    """Returns fixed audio bytes without a duration so the estimate applies."""

    def __init__(self, fail_texts: set[str] | None = None) -> None:
        self.fail_texts = fail_texts or set()
        self.calls: list[dict[str, Any]] = []

    async def synthesize(
        self,
        text: str,
        voice: str = "alloy",
        speed: float = 1.0,
        output_format: str = "mp3",
        **kwargs: Any,
    ) -> dict[str, Any]:
        self.calls.append({"text": text, "voice": voice, "speed": speed})
        if text in self.fail_texts:
            raise RuntimeError("speech provider error")
        return {"audio": b"ID3-fake-audio", "content_type": "audio/mpeg", "output_format": "mp3"}


@pytest.fixture(scope="session", autouse=True)
def fake_redis() -> Generator[None, None, None]:
    """Patch redis client to use in-memory storage for tests."""
    original_from_url = redis_module.Redis.from_url

    def fake_from_url(cls, url: str, *args, **kwargs):  # type: ignore[unused-argument]
        return DummyRedis()

    redis_module.Redis.from_url = classmethod(fake_from_url)  # type: ignore[assignment]
    try:
        yield
    finally:
        redis_module.Redis.from_url = original_from_url  # type: ignore[assignment]


@pytest.fixture
def session_factory(tmp_path: Path) -> Callable[[], Session]:
    """Create a SQLite session factory with fresh tables for each test."""
    db_path = tmp_path / "test.db"
    engine = create_engine(f"sqlite:///{db_path}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
    finally:
        engine.dispose()


@pytest.fixture
def seeded_project(session_factory: Callable[[], Session]) -> str:
    """Three-slide presentation with notes on slides 1 and 2 and a near-empty slide 3."""
    with session_factory() as session:
        session.add(
            Presentation(
                id=PROJECT_ID,
                owner_id=OWNER_ID,
                title="Quarterly Review",
                theme={"backgroundColor": "#102030", "textColor": "#ffffff"},
            )
        )
        session.add_all(
            [
                Slide(
                    id=SLIDE_IDS[0],
                    presentation_id=PROJECT_ID,
                    position=0,
                    title="Welcome",
                    blocks=[{"type": "TEXT", "content": {"text": "Quarterly roadmap review"}}],
                ),
                Slide(
                    id=SLIDE_IDS[1],
                    presentation_id=PROJECT_ID,
                    position=1,
                    title="Launches",
                    blocks=[{"type": "LIST", "content": {"items": ["Mobile app", "Billing v2", "Reports"]}}],
                ),
                Slide(
                    id=SLIDE_IDS[2],
                    presentation_id=PROJECT_ID,
                    position=2,
                    title="Thanks",
                    blocks=[{"type": "TEXT", "content": "Thanks!"}],
                ),
            ]
        )
        session.add_all(
            [
                SpeakerNote(slide_id=SLIDE_IDS[0], content=SLIDE_ONE_NOTES, is_ai_generated=False),
                SpeakerNote(slide_id=SLIDE_IDS[1], content=SLIDE_TWO_NOTES, is_ai_generated=True),
                SpeakerNote(slide_id=SLIDE_IDS[2], content="", is_ai_generated=False),
            ]
        )
        session.commit()
    return PROJECT_ID


@pytest.fixture
def media_root(tmp_path: Path) -> Path:
    root = tmp_path / "media"
    root.mkdir()
    service_config.set("media_root", str(root))
    return root


@pytest.fixture
def artifact_store(media_root: Path) -> LocalArtifactStore:
    return LocalArtifactStore(media_root, base_url="/media")


@pytest.fixture
def text_driver() -> FakeTextDriver:
    return FakeTextDriver()


@pytest.fixture
def tts_engine() -> FakeTTSEngine:
    return FakeTTSEngine()


@pytest.fixture
def missing_encoder() -> FFmpegEncoder:
    return FFmpegEncoder(binary="deckcast-ffmpeg-not-installed", timeout=5)


@pytest.fixture
def queue_manager() -> QueueManager:
    return QueueManager()


@pytest.fixture
def pipeline(
    session_factory: Callable[[], Session],
    text_driver: FakeTextDriver,
    tts_engine: FakeTTSEngine,
    artifact_store: LocalArtifactStore,
    missing_encoder: FFmpegEncoder,
    queue_manager: QueueManager,
) -> Pipeline:
    return build_pipeline(
        session_factory,
        text_driver=text_driver,
        tts_engine=tts_engine,
        artifact_store=artifact_store,
        encoder=missing_encoder,
        queue_manager=queue_manager,
    )
