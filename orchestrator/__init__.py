"""Job orchestrator primitives: store, queue and service."""

from .queue import InMemoryJobQueue
from .service import JobOrchestrator
from .store import InMemoryJobStore, JobStore

__all__ = [
    "InMemoryJobQueue",
    "InMemoryJobStore",
    "JobOrchestrator",
    "JobStore",
]
