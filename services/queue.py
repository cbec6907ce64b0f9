import logging
import time
from typing import Any, cast

import redis

from shared.models import QueueWorkItem
from shared.utils import config

logger = logging.getLogger(__name__)

JOB_QUEUE_KEY = "pipeline_jobs"
NARRATION_JOB = "narration"
VIDEO_EXPORT_JOB = "video_export"

PROCESSING_SUFFIX = ":processing"
DELAYED_SUFFIX = ":delayed"
CLAIMS_SUFFIX = ":claims"


class QueueManager:
    """Reliable Redis list queue.

    Items are claimed by atomically moving them into ``<key>:processing`` and
    removed from there on acknowledgement. Each claim is stamped in the
    ``<key>:claims`` sorted set and kept fresh by its worker with :meth:`touch`;
    :meth:`recover` only puts back items whose stamp is older than the
    visibility timeout, so work held by a live worker is never handed out
    twice. Delayed retries wait in the ``<key>:delayed`` sorted set, scored by
    the time they become ready.
    """

    def __init__(self, redis_url: str | None = None) -> None:
        self.redis_url = redis_url or config.get("redis_url", "redis://localhost:6379/0")
        self.redis = redis.Redis.from_url(self.redis_url, decode_responses=True)  # type: ignore[misc]
        self._connection_checked = False
        logger.info(f"QueueManager initialized with Redis URL: {self.redis_url}")

    def _ensure_connection(self) -> None:
        """Lazy connection check with retry logic."""
        if self._connection_checked:
            return

        max_retries = 3
        retry_delay = 1.0

        for attempt in range(max_retries):
            try:
                self.redis.ping()
                self._connection_checked = True
                logger.info(f"Successfully connected to Redis at {self.redis_url}")
                return
            except Exception as e:
                if attempt == max_retries - 1:
                    logger.error(f"Failed to connect to Redis at {self.redis_url} after {max_retries} attempts: {e}")
                    raise ConnectionError(f"Redis connection failed: {e}") from e
                else:
                    logger.warning(f"Redis connection attempt {attempt + 1} failed, retrying in {retry_delay}s: {e}")
                    time.sleep(retry_delay)
                    retry_delay *= 2

    @staticmethod
    def _decode(result: Any) -> str | None:
        if result is None:
            return None
        if isinstance(result, bytes):
            return result.decode("utf-8")
        return str(result)

    def enqueue(self, key: str, value: str) -> None:
        try:
            self._ensure_connection()
            self.redis.rpush(key, value)
            logger.debug(f"Successfully enqueued item to queue '{key}'")
        except Exception as e:
            logger.error(f"Failed to enqueue to queue '{key}': {e}")
            # Reset connection flag to force reconnection on next attempt
            self._connection_checked = False
            raise ConnectionError(f"Redis enqueue operation failed: {e}") from e

    def submit(self, key: str, job_type: str, payload: dict[str, Any], item_id: str) -> QueueWorkItem:
        """Wrap ``payload`` in a work item and enqueue it."""
        item = QueueWorkItem(id=item_id, job_type=job_type, payload=payload)
        self.enqueue(key, item.model_dump_json())
        logger.info(f"Queued {job_type} job {item_id} on '{key}'")
        return item

    def claim(self, key: str) -> str | None:
        """Move the head item into the processing list and return it."""
        self._ensure_connection()
        result = self.redis.lmove(key, key + PROCESSING_SUFFIX, "LEFT", "RIGHT")  # type: ignore[misc]
        value = self._decode(result)
        if value is not None:
            self.redis.zadd(key + CLAIMS_SUFFIX, {value: time.time()})
        return value

    def touch(self, key: str, value: str) -> None:
        """Refresh the claim stamp of an item that is still being worked on."""
        self.redis.zadd(key + CLAIMS_SUFFIX, {value: time.time()}, xx=True)

    def ack(self, key: str, value: str) -> None:
        """Drop a claimed item from the processing list."""
        self.redis.lrem(key + PROCESSING_SUFFIX, 1, value)
        self.redis.zrem(key + CLAIMS_SUFFIX, value)

    def schedule_retry(self, key: str, claimed: str, retry_value: str, delay_seconds: float) -> None:
        """Replace a claimed item with ``retry_value``, ready again after ``delay_seconds``."""
        ready_at = time.time() + max(0.0, delay_seconds)
        self.redis.zadd(key + DELAYED_SUFFIX, {retry_value: ready_at})
        self.ack(key, claimed)
        logger.debug(f"Scheduled retry on '{key}' in {delay_seconds:.1f}s")

    def promote_due(self, key: str, now: float | None = None) -> int:
        """Move delayed items whose ready time has passed back onto the queue."""
        now = time.time() if now is None else now
        delayed_key = key + DELAYED_SUFFIX
        due = self.redis.zrangebyscore(delayed_key, "-inf", now)  # type: ignore[misc]
        moved = 0
        for raw in due or []:
            value = self._decode(raw)
            # Only the caller that removes the entry re-queues it
            if value is not None and self.redis.zrem(delayed_key, value):
                self.redis.rpush(key, value)
                moved += 1
        return moved

    def recover(self, key: str, visibility_timeout: float, now: float | None = None) -> int:
        """Return claimed items whose stamp has expired to the front of the queue.

        An item without a stamp (its worker died between claiming and stamping)
        is stamped now and becomes recoverable one timeout later.
        """
        now = time.time() if now is None else now
        processing_key = key + PROCESSING_SUFFIX
        claims_key = key + CLAIMS_SUFFIX
        moved = 0
        # Newest first so the oldest claim ends up at the head
        for raw in reversed(self.redis.lrange(processing_key, 0, -1) or []):
            value = self._decode(raw)
            if value is None:
                continue
            claimed_at = self.redis.zscore(claims_key, value)
            if claimed_at is None:
                self.redis.zadd(claims_key, {value: now}, nx=True)
                continue
            if now - float(claimed_at) < visibility_timeout:
                continue
            # Only the caller that removes the entry re-queues it
            if self.redis.lrem(processing_key, 1, value):
                self.redis.zrem(claims_key, value)
                self.redis.lpush(key, value)
                moved += 1
        if moved:
            logger.warning(f"Recovered {moved} unacknowledged item(s) on '{key}'")
        return moved

    def get_length(self, key: str) -> int:
        result = self.redis.llen(key)
        return cast(int, result)
