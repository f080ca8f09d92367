"""Orchestrator service layer: job submission, status lookup and worker hand-off."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Union

from core import JobEvent, JobRecord, JobStatus, TriggerPayload, WindowMode, parse_trigger_topic
from .queue import InMemoryJobQueue
from .store import InMemoryJobStore, JobStore, _new_job_id


logger = logging.getLogger(__name__)


class JobOrchestrator:
    """Central orchestrator for the job queue lifecycle and status APIs."""

    def __init__(
        self,
        *,
        store: Optional[JobStore] = None,
        queue: Optional[InMemoryJobQueue] = None,
    ) -> None:
        self._store = store or InMemoryJobStore()
        self._queue = queue or InMemoryJobQueue()

    @property
    def store(self) -> JobStore:
        return self._store

    @property
    def queue(self) -> InMemoryJobQueue:
        return self._queue

    async def submit(
        self,
        topic: str,
        window_mode: Optional[Union[WindowMode, str]] = None,
        *,
        job_id: Optional[str] = None,
    ) -> JobRecord:
        """Create a QUEUED job and hand it to the work queue.

        An explicit `window_mode` wins over a marker prefix carried in `topic`.
        A redelivered trigger for a known `job_id` returns the stored record
        untouched and is not queued again.
        """
        clean_topic, parsed_mode = parse_trigger_topic(topic)
        mode = WindowMode(window_mode) if window_mode else parsed_mode
        job_id = str(job_id or "").strip()
        if job_id:
            existing = await self._store.get(job_id)
            if existing is not None:
                logger.info("job_duplicate_trigger job_id=%s status=%s", job_id, existing.status.value)
                return existing
        else:
            job_id = _new_job_id()

        record = JobRecord(
            job_id=job_id,
            status=JobStatus.QUEUED,
            topic=clean_topic,
            raw_topic=str(topic or ""),
            window_mode=mode,
            message="Queued",
            events=[JobEvent(status=JobStatus.QUEUED, message="Queued")],
        )
        await self._store.put(job_id, record)
        self._queue.enqueue(job_id)
        logger.info("job_submitted job_id=%s topic=%s window=%s", job_id, clean_topic, mode.value)
        return record

    async def accept(self, payload: TriggerPayload) -> JobRecord:
        """Accept an inbound `{jobId, topic}` trigger."""
        return await self.submit(payload.topic, job_id=payload.job_id)

    async def get_job(self, job_id: str) -> Optional[JobRecord]:
        """Fetch current job snapshot; None means not found (distinct from FAILED)."""
        return await self._store.get(job_id)

    async def dequeue_next_job(self) -> Optional[JobRecord]:
        """Worker-facing method to pick the next queued job."""
        job_id = self._queue.dequeue()
        if not job_id:
            return None
        record = await self._store.get(job_id)
        if record is None:
            logger.warning("job_missing_on_dequeue job_id=%s", job_id)
            self._queue.ack(job_id)
            return None
        return record

    async def fail_job(self, job_id: str, message: str) -> Optional[JobRecord]:
        """Mark a job FAILED when no pipeline can run it; terminal jobs are returned as-is."""
        record = await self._store.get(job_id)
        if record is None or record.status.is_terminal:
            return record
        logger.error("job_rejected job_id=%s message=%s", job_id, message)
        return await self._store.update(
            job_id,
            {
                "status": JobStatus.FAILED,
                "message": message,
                "event": JobEvent(status=JobStatus.FAILED, message=message),
            },
        )

    def ack(self, job_id: str) -> bool:
        return self._queue.ack(job_id)

    def nack(self, job_id: str) -> bool:
        return self._queue.nack(job_id)

    async def wait_for_job(self, job_id: str, *, attempts: int = 60, interval: float = 2.0) -> Optional[JobRecord]:
        """Bounded polling until the job reaches a terminal state; returns the last snapshot."""
        record = None
        for attempt in range(max(1, int(attempts))):
            record = await self._store.get(job_id)
            if record is not None and record.status.is_terminal:
                return record
            if attempt + 1 < attempts:
                await asyncio.sleep(interval)
        return record
