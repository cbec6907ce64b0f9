"""Queue workers for narration and video-export jobs.

Run standalone with ``python -m services.worker``.
"""

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Any

import redis
from pydantic import ValidationError

from services.queue import JOB_QUEUE_KEY, NARRATION_JOB, VIDEO_EXPORT_JOB, QueueManager
from shared.exceptions import PipelineError
from shared.models import QueueWorkItem
from shared.utils import config, setup_logging

logger = setup_logging("pipeline-worker")

JobHandler = Callable[[dict[str, Any], bool], Awaitable[Any]]


def build_handlers(pipeline) -> dict[str, JobHandler]:
    """Map job types to the pipeline operations that execute them."""

    async def run_narration(payload: dict[str, Any], final_attempt: bool) -> Any:
        return await pipeline.orchestrator.run_narration(
            payload["narration_project_id"], payload.get("slide_ids"), final_attempt=final_attempt
        )

    async def run_video_export(payload: dict[str, Any], final_attempt: bool) -> Any:
        return await pipeline.assembler.run(payload["job_id"], final_attempt=final_attempt)

    return {NARRATION_JOB: run_narration, VIDEO_EXPORT_JOB: run_video_export}


class WorkerPool:
    """Fixed number of asyncio workers draining one queue.

    A failing item is retried with exponential backoff until ``max_attempts``
    is reached. Pipeline errors are final and never retried. While a handler
    runs, its claim is refreshed every third of ``visibility_timeout`` so no
    other pool recovers it.
    """

    def __init__(
        self,
        queue_manager: QueueManager,
        handlers: dict[str, JobHandler],
        queue_key: str = JOB_QUEUE_KEY,
        concurrency: int | None = None,
        max_attempts: int | None = None,
        backoff_seconds: float | None = None,
        visibility_timeout: float | None = None,
        poll_interval: float = 1.0,
    ):
        self.queue_manager = queue_manager
        self.handlers = handlers
        self.queue_key = queue_key
        self.concurrency = concurrency or int(config.get("worker_concurrency", 2))
        self.max_attempts = max_attempts or int(config.get("queue_max_attempts", 3))
        self.backoff_seconds = (
            backoff_seconds if backoff_seconds is not None else float(config.get("queue_backoff_seconds", 2))
        )
        self.visibility_timeout = (
            visibility_timeout
            if visibility_timeout is not None
            else float(config.get("queue_visibility_timeout", 900))
        )
        self.poll_interval = poll_interval
        self._tasks: list[asyncio.Task] = []
        self._stopping = asyncio.Event()

    def retry_delay(self, attempt: int) -> float:
        """Delay before the attempt following ``attempt``: base, 2x base, 4x base, ..."""
        return self.backoff_seconds * (2 ** (attempt - 1))

    async def process_next(self) -> bool:
        """Claim and run one item. Returns False when the queue was empty."""
        self.queue_manager.promote_due(self.queue_key)
        raw = self.queue_manager.claim(self.queue_key)
        if raw is None:
            self.queue_manager.recover(self.queue_key, self.visibility_timeout)
            return False

        try:
            item = QueueWorkItem.model_validate_json(raw)
        except (ValidationError, json.JSONDecodeError) as e:
            logger.error(f"Dropping malformed work item: {e}")
            self.queue_manager.ack(self.queue_key, raw)
            return True

        handler = self.handlers.get(item.job_type)
        if handler is None:
            logger.error(f"No handler for job type '{item.job_type}', dropping {item.id}")
            self.queue_manager.ack(self.queue_key, raw)
            return True

        final_attempt = item.attempt >= self.max_attempts
        logger.info(f"Running {item.job_type} job {item.id} (attempt {item.attempt}/{self.max_attempts})")
        try:
            await self._run_claimed(handler, item, raw, final_attempt)
        except PipelineError as e:
            logger.error(f"{item.job_type} job {item.id} failed permanently: {e}")
            self.queue_manager.ack(self.queue_key, raw)
        except Exception as e:
            if final_attempt:
                logger.error(f"{item.job_type} job {item.id} failed after {item.attempt} attempts: {e}")
                self.queue_manager.ack(self.queue_key, raw)
            else:
                delay = self.retry_delay(item.attempt)
                logger.warning(f"{item.job_type} job {item.id} failed, retrying in {delay:.1f}s: {e}")
                retry = item.model_copy(update={"attempt": item.attempt + 1})
                self.queue_manager.schedule_retry(self.queue_key, raw, retry.model_dump_json(), delay)
        else:
            self.queue_manager.ack(self.queue_key, raw)
            logger.info(f"{item.job_type} job {item.id} done")
        return True

    async def _run_claimed(self, handler: JobHandler, item: QueueWorkItem, raw: str, final_attempt: bool) -> None:
        heartbeat = asyncio.create_task(self._keep_claim(item, raw))
        try:
            await handler(item.payload, final_attempt)
        finally:
            heartbeat.cancel()

    async def _keep_claim(self, item: QueueWorkItem, raw: str) -> None:
        interval = self.visibility_timeout / 3
        while True:
            await asyncio.sleep(interval)
            try:
                self.queue_manager.touch(self.queue_key, raw)
            except (ConnectionError, redis.RedisError) as e:
                logger.warning(f"Could not refresh claim on job {item.id}: {e}")

    async def _worker(self, index: int) -> None:
        logger.info(f"Worker {index} started")
        while not self._stopping.is_set():
            try:
                processed = await self.process_next()
            except (ConnectionError, redis.RedisError) as e:
                logger.error(f"Worker {index} lost the queue connection: {e}")
                processed = False
            if not processed:
                try:
                    await asyncio.wait_for(self._stopping.wait(), timeout=self.poll_interval)
                except asyncio.TimeoutError:
                    pass
        logger.info(f"Worker {index} stopped")

    def start(self) -> None:
        """Requeue items whose claim expired and start the workers."""
        self.queue_manager.recover(self.queue_key, self.visibility_timeout)
        self._stopping.clear()
        self._tasks = [asyncio.create_task(self._worker(i)) for i in range(self.concurrency)]
        logger.info(f"Started {self.concurrency} workers on '{self.queue_key}'")

    async def stop(self) -> None:
        self._stopping.set()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

    async def run_forever(self) -> None:
        self.start()
        try:
            await asyncio.gather(*self._tasks)
        finally:
            await self.stop()


def main() -> None:
    from database import init_database
    from services.pipeline import build_pipeline

    init_database()
    queue_manager = QueueManager()
    pipeline = build_pipeline(queue_manager=queue_manager)
    pool = WorkerPool(queue_manager, build_handlers(pipeline))
    try:
        asyncio.run(pool.run_forever())
    except KeyboardInterrupt:
        logger.info("Worker pool interrupted, shutting down")


if __name__ == "__main__":
    main()
