"""In-memory FIFO work queue with at-least-once delivery for job IDs."""

from __future__ import annotations

from collections import deque
from threading import Lock
from typing import Deque, Optional, Set


class InMemoryJobQueue:
    """Dequeued IDs stay in flight until acked; nack puts them back at the front."""

    def __init__(self) -> None:
        self._queue: Deque[str] = deque()
        self._enqueued: Set[str] = set()
        self._in_flight: Set[str] = set()
        self._lock = Lock()

    def enqueue(self, job_id: str) -> bool:
        """Queue job ID once. Returns True when newly enqueued."""
        with self._lock:
            if job_id in self._enqueued or job_id in self._in_flight:
                return False
            self._queue.append(job_id)
            self._enqueued.add(job_id)
            return True

    def dequeue(self) -> Optional[str]:
        """Pop next job ID and mark it in flight, or None when empty."""
        with self._lock:
            if not self._queue:
                return None
            job_id = self._queue.popleft()
            self._enqueued.discard(job_id)
            self._in_flight.add(job_id)
            return job_id

    def ack(self, job_id: str) -> bool:
        with self._lock:
            if job_id not in self._in_flight:
                return False
            self._in_flight.discard(job_id)
            return True

    def nack(self, job_id: str) -> bool:
        """Return an in-flight job ID to the head of the queue for redelivery."""
        with self._lock:
            if job_id not in self._in_flight:
                return False
            self._in_flight.discard(job_id)
            self._queue.appendleft(job_id)
            self._enqueued.add(job_id)
            return True

    def size(self) -> int:
        with self._lock:
            return len(self._queue)

    def in_flight(self) -> int:
        with self._lock:
            return len(self._in_flight)
