import asyncio

import pytest

from services.queue import CLAIMS_SUFFIX, JOB_QUEUE_KEY, DELAYED_SUFFIX, PROCESSING_SUFFIX, QueueManager
from services.worker import WorkerPool, build_handlers
from shared.enums import ExportStatus, NarrationStatus
from shared.exceptions import ProviderFailure
from shared.models import QueueWorkItem, VideoExportRequest

from conftest import OWNER_ID


class RecordingHandler:
    def __init__(self, errors=None):
        self.errors = list(errors or [])
        self.calls = []

    async def __call__(self, payload, final_attempt):
        self.calls.append((payload, final_attempt))
        if self.errors:
            raise self.errors.pop(0)


@pytest.fixture
def queue():
    return QueueManager()


def _submit(queue, job_type="narration", attempt=1):
    item = QueueWorkItem(id="job-1", job_type=job_type, payload={"value": 1}, attempt=attempt)
    queue.enqueue(JOB_QUEUE_KEY, item.model_dump_json())


def _pool(queue, handler, **kwargs):
    return WorkerPool(queue, {"narration": handler}, concurrency=2, max_attempts=3, backoff_seconds=2, **kwargs)


def test_backoff_doubles():
    pool = _pool(QueueManager(), RecordingHandler())
    assert [pool.retry_delay(n) for n in (1, 2, 3)] == [2, 4, 8]


@pytest.mark.asyncio
async def test_successful_item_is_acknowledged(queue):
    handler = RecordingHandler()
    _submit(queue)

    assert await _pool(queue, handler).process_next() is True
    assert handler.calls == [({"value": 1}, False)]
    assert queue.get_length(JOB_QUEUE_KEY) == 0
    assert queue.get_length(JOB_QUEUE_KEY + PROCESSING_SUFFIX) == 0


@pytest.mark.asyncio
async def test_empty_queue(queue):
    assert await _pool(queue, RecordingHandler()).process_next() is False


@pytest.mark.asyncio
async def test_transient_failure_is_retried_with_next_attempt(queue):
    handler = RecordingHandler(errors=[RuntimeError("flaky")])
    _submit(queue)

    await _pool(queue, handler).process_next()

    assert queue.get_length(JOB_QUEUE_KEY + PROCESSING_SUFFIX) == 0
    delayed = queue.redis.zrangebyscore(JOB_QUEUE_KEY + DELAYED_SUFFIX, "-inf", "+inf")
    assert len(delayed) == 1
    assert QueueWorkItem.model_validate_json(delayed[0]).attempt == 2


@pytest.mark.asyncio
async def test_final_attempt_is_flagged_and_not_retried(queue):
    handler = RecordingHandler(errors=[RuntimeError("still broken")])
    _submit(queue, attempt=3)

    await _pool(queue, handler).process_next()

    assert handler.calls[0][1] is True
    assert queue.redis.zcard(JOB_QUEUE_KEY + DELAYED_SUFFIX) == 0
    assert queue.get_length(JOB_QUEUE_KEY + PROCESSING_SUFFIX) == 0


@pytest.mark.asyncio
async def test_pipeline_errors_are_not_retried(queue):
    handler = RecordingHandler(errors=[ProviderFailure("bad request")])
    _submit(queue)

    await _pool(queue, handler).process_next()

    assert queue.redis.zcard(JOB_QUEUE_KEY + DELAYED_SUFFIX) == 0
    assert queue.get_length(JOB_QUEUE_KEY) == 0


@pytest.mark.asyncio
async def test_unknown_job_type_is_dropped(queue):
    _submit(queue, job_type="mystery")
    assert await _pool(queue, RecordingHandler()).process_next() is True
    assert queue.get_length(JOB_QUEUE_KEY + PROCESSING_SUFFIX) == 0


@pytest.mark.asyncio
async def test_malformed_item_is_dropped(queue):
    queue.enqueue(JOB_QUEUE_KEY, "not json")
    assert await _pool(queue, RecordingHandler()).process_next() is True
    assert queue.get_length(JOB_QUEUE_KEY + PROCESSING_SUFFIX) == 0


@pytest.mark.asyncio
async def test_starting_another_pool_leaves_running_job_alone(queue):
    _submit(queue)
    held = queue.claim(JOB_QUEUE_KEY)

    second = _pool(queue, RecordingHandler(), visibility_timeout=60)
    second.start()
    await second.stop()

    assert await second.process_next() is False
    assert queue.redis.lrange(JOB_QUEUE_KEY + PROCESSING_SUFFIX, 0, -1) == [held]


@pytest.mark.asyncio
async def test_claim_is_refreshed_while_handler_runs(queue):
    stamps = []

    async def slow_handler(payload, final_attempt):
        raw = queue.redis.lrange(JOB_QUEUE_KEY + PROCESSING_SUFFIX, 0, -1)[0]
        queue.redis.zadd(JOB_QUEUE_KEY + CLAIMS_SUFFIX, {raw: 0.0})
        await asyncio.sleep(0.1)
        stamps.append(queue.redis.zscore(JOB_QUEUE_KEY + CLAIMS_SUFFIX, raw))

    _submit(queue)
    pool = WorkerPool(queue, {"narration": slow_handler}, concurrency=1, max_attempts=3, visibility_timeout=0.03)

    assert await pool.process_next() is True
    assert stamps[0] > 0
    assert queue.redis.zcard(JOB_QUEUE_KEY + CLAIMS_SUFFIX) == 0


@pytest.mark.asyncio
async def test_pool_runs_narration_and_export_jobs(seeded_project, pipeline, queue_manager):
    narration = await pipeline.orchestrator.start_narration(seeded_project, OWNER_ID)
    job = pipeline.assembler.start_export(
        seeded_project, OWNER_ID, VideoExportRequest(include_narration=True, narration_project_id=narration.id)
    )

    pool = WorkerPool(queue_manager, build_handlers(pipeline), concurrency=1, max_attempts=3)
    assert await pool.process_next() is True
    assert await pool.process_next() is True
    assert await pool.process_next() is False

    assert pipeline.orchestrator.get_narration_project(narration.id).status == NarrationStatus.COMPLETED
    finished = pipeline.tracker.get(job.id)
    assert finished.status == ExportStatus.COMPLETED
    assert finished.output_url.endswith(".html")
