"""Job store: persisted job records observed by pollers."""

from __future__ import annotations

from datetime import datetime, timezone
from threading import Lock
from typing import Any, Dict, Mapping, Optional, Protocol
from uuid import uuid4

from core import JobEvent, JobRecord
from utils.exceptions import StoreWriteFailure


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_job_id() -> str:
    return f"job_{_utcnow().strftime('%Y%m%d_%H%M%S')}_{uuid4().hex[:8]}"


class JobStore(Protocol):
    """Keyed document store; `put` creates once, `update` is repeatable and last-write-wins."""

    async def put(self, job_id: str, record: JobRecord) -> None:
        ...

    async def update(self, job_id: str, fields: Mapping[str, Any]) -> JobRecord:
        ...

    async def get(self, job_id: str) -> Optional[JobRecord]:
        ...


class InMemoryJobStore:
    """Thread-safe in-process job store."""

    def __init__(self) -> None:
        self._records: Dict[str, JobRecord] = {}
        self._lock = Lock()

    async def put(self, job_id: str, record: JobRecord) -> None:
        """Create a record; an existing job id is never overwritten."""
        with self._lock:
            if job_id in self._records:
                raise StoreWriteFailure(f"Job {job_id} already exists", job_id=job_id)
            self._records[job_id] = record.model_copy(update={"job_id": job_id}, deep=True)

    async def update(self, job_id: str, fields: Mapping[str, Any]) -> JobRecord:
        """Merge fields into the record; `event` entries are appended to the event log."""
        with self._lock:
            current = self._records.get(job_id)
            if current is None:
                raise StoreWriteFailure(f"Unknown job: {job_id}", job_id=job_id)
            if current.status.is_terminal:
                raise StoreWriteFailure(f"Job {job_id} is {current.status.value} and immutable", job_id=job_id)
            data = current.model_dump()
            patch = dict(fields)
            event = patch.pop("event", None)
            patch.setdefault("updated_at", _utcnow())
            data.update(patch)
            if event is not None:
                if isinstance(event, JobEvent):
                    event = event.model_dump()
                data["events"] = list(data.get("events") or []) + [event]
            try:
                updated = JobRecord.model_validate(data)
            except ValueError as exc:
                raise StoreWriteFailure(f"Invalid update for job {job_id}", job_id=job_id, error=str(exc)) from exc
            self._records[job_id] = updated
            return updated.model_copy(deep=True)

    async def get(self, job_id: str) -> Optional[JobRecord]:
        with self._lock:
            record = self._records.get(job_id)
            return record.model_copy(deep=True) if record else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
