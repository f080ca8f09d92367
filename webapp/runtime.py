"""Shared runtime singletons for web/CLI entrypoints."""

from __future__ import annotations

from typing import Optional

from config import get_settings
from orchestrator.queue import InMemoryJobQueue
from orchestrator.service import JobOrchestrator
from orchestrator.store import InMemoryJobStore
from pipeline.runtime import JobPipelineRuntime, PipelineStrategy


_ORCHESTRATOR = JobOrchestrator(store=InMemoryJobStore(), queue=InMemoryJobQueue())
_RUNTIME: Optional[JobPipelineRuntime] = None


def get_orchestrator() -> JobOrchestrator:
    return _ORCHESTRATOR


def get_runtime() -> JobPipelineRuntime:
    """Built on first use so the LLM provider is only configured when a job actually runs."""
    global _RUNTIME
    if _RUNTIME is None:
        settings = get_settings()
        _RUNTIME = JobPipelineRuntime(
            orchestrator=_ORCHESTRATOR,
            strategy=PipelineStrategy.default(settings),
            settings=settings,
        )
    return _RUNTIME
