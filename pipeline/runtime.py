"""Job lifecycle controller: drives a queued job through fetch, resolve and analyze."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from time import perf_counter
from typing import Any, Callable, Dict, List, Optional, Sequence

from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential

from config.settings import Settings, get_settings
from core import EvidenceSet, JobEvent, JobRecord, JobStatus, can_transition
from orchestrator.service import JobOrchestrator
from pipeline.aggregator import Aggregator
from pipeline.dedup import dedup_by_url
from pipeline.report import LLMSummarizer, ReportBridge, Summarizer
from pipeline.resolver import LinkResolver
from pipeline.scoring import ScoringWeights
from sources.adapters import SourceAdapter, default_adapters
from utils.exceptions import InvalidTransitionError, NoEvidenceFound, SynthesisError


logger = logging.getLogger(__name__)

_MAX_MESSAGE_CHARS = 200


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _short(text: str, limit: int = _MAX_MESSAGE_CHARS) -> str:
    value = " ".join(str(text or "").split())
    if len(value) <= limit:
        return value
    return value[: limit - 3].rstrip() + "..."


@dataclass
class PipelineStrategy:
    """Everything that differs between pipeline variants."""

    adapters: Sequence[SourceAdapter]
    scoring_weights: ScoringWeights
    summarizer: Summarizer
    resolver: Optional[LinkResolver] = None

    @classmethod
    def default(
        cls,
        settings: Optional[Settings] = None,
        summarizer: Optional[Summarizer] = None,
    ) -> "PipelineStrategy":
        settings = settings or get_settings()
        if summarizer is None:
            from intelligence.llm import get_llm

            summarizer = LLMSummarizer(get_llm(settings=settings.llm), max_tokens=settings.llm.max_tokens)
        return cls(
            adapters=default_adapters(settings.sources),
            scoring_weights=ScoringWeights.from_settings(settings.scoring),
            summarizer=summarizer,
            resolver=LinkResolver(settings.resolver),
        )


@dataclass
class JobRunResult:
    job_id: str
    status: JobStatus
    message: str
    evidence_count: int
    duration_ms: int


class JobPipelineRuntime:
    """Worker runtime that executes queued briefing jobs."""

    def __init__(
        self,
        *,
        orchestrator: JobOrchestrator,
        strategy: PipelineStrategy,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._strategy = strategy
        self._settings = settings or get_settings()
        pipeline_settings = self._settings.pipeline

        self._aggregator = Aggregator(
            strategy.adapters,
            weights=strategy.scoring_weights,
            evidence_cap=pipeline_settings.evidence_cap,
            adapter_timeout=pipeline_settings.adapter_timeout,
            clock=clock,
        )
        self._resolver = strategy.resolver or LinkResolver(self._settings.resolver)
        self._bridge = ReportBridge(
            strategy.summarizer,
            language=pipeline_settings.report_language,
            timeout=self._settings.llm.timeout,
        )
        self._final_write_attempts = max(1, int(pipeline_settings.final_write_attempts))
        self._final_write_backoff = max(0.0, float(pipeline_settings.final_write_backoff))

    async def run_next(self) -> Optional[JobRunResult]:
        """Process one queued job end-to-end."""
        record = await self._orchestrator.dequeue_next_job()
        if record is None:
            return None
        try:
            result = await self.run_job(record.job_id)
        except Exception:
            self._orchestrator.nack(record.job_id)
            raise
        self._orchestrator.ack(record.job_id)
        return result

    async def drain(self, *, max_jobs: Optional[int] = None) -> List[JobRunResult]:
        """Run queued jobs until the queue is empty (or `max_jobs` were processed)."""
        results: List[JobRunResult] = []
        while max_jobs is None or len(results) < max_jobs:
            result = await self.run_next()
            if result is None:
                break
            results.append(result)
        return results

    async def run_job(self, job_id: str) -> Optional[JobRunResult]:
        started = perf_counter()
        record = await self._orchestrator.get_job(job_id)
        if record is None:
            logger.warning("job_not_found job_id=%s", job_id)
            return None
        if record.status.is_terminal:
            logger.info("job_already_terminal job_id=%s status=%s", job_id, record.status.value)
            return self._result(record.job_id, record.status, record.message, record.evidence_count or 0, started)
        if record.status != JobStatus.QUEUED:
            message = "Error: job was interrupted before completion"
            await self._finalize(job_id, record.status, JobStatus.FAILED, {"message": message})
            return self._result(job_id, JobStatus.FAILED, message, 0, started)

        topic = record.topic
        window = record.window
        current = record.status
        evidence_count = 0
        logger.info("job_start job_id=%s topic=%s window=%s", job_id, topic, window.mode.value)

        try:
            current = await self._advance(job_id, current, JobStatus.FETCHING, f"Collecting intelligence ({window.label})...")
            evidence = await self._aggregator.aggregate(topic, window)
            if evidence.is_empty:
                raise NoEvidenceFound(f"No data found for '{topic}' in window {window.label}")
            evidence_count = len(evidence)

            current = await self._advance(job_id, current, JobStatus.RESOLVING, f"Validating {evidence_count} sources...")
            evidence = await self._resolve(evidence)
            evidence_count = len(evidence)

            current = await self._advance(job_id, current, JobStatus.ANALYZING, "Generating SITREP...")
            report = await self._bridge.synthesize(topic, window, evidence)
        except NoEvidenceFound as exc:
            message = _short(exc.message)
            logger.info("job_no_evidence job_id=%s topic=%s", job_id, topic)
            await self._finalize(job_id, current, JobStatus.FAILED, {"message": message, "evidence_count": 0})
            return self._result(job_id, JobStatus.FAILED, message, 0, started)
        except SynthesisError as exc:
            message = _short(f"Analysis failed: {exc.message}")
            logger.error("job_synthesis_failed job_id=%s error=%s", job_id, exc)
            await self._finalize(job_id, current, JobStatus.FAILED, {"message": message, "evidence_count": evidence_count})
            return self._result(job_id, JobStatus.FAILED, message, evidence_count, started)
        except Exception as exc:
            message = f"Error: {exc.__class__.__name__}"
            logger.exception("job_failed job_id=%s error=%s", job_id, exc)
            await self._finalize(job_id, current, JobStatus.FAILED, {"message": message})
            return self._result(job_id, JobStatus.FAILED, message, evidence_count, started)

        message = "SITREP generated."
        await self._finalize(
            job_id,
            current,
            JobStatus.COMPLETED,
            {"message": message, "result": report, "evidence_count": evidence_count},
        )
        logger.info("job_completed job_id=%s evidence=%d report_chars=%d", job_id, evidence_count, len(report))
        return self._result(job_id, JobStatus.COMPLETED, message, evidence_count, started)

    async def _resolve(self, evidence: EvidenceSet) -> EvidenceSet:
        resolved = await self._resolver.resolve_many(evidence.items)
        # two aggregator links can point at the same article
        unique = dedup_by_url(resolved)
        if len(unique) != len(resolved):
            logger.info("resolved_duplicates_dropped count=%d", len(resolved) - len(unique))
        return evidence.model_copy(update={"items": unique})

    @staticmethod
    def _transition_fields(current: JobStatus, target: JobStatus, message: str) -> Dict[str, Any]:
        if not can_transition(current, target):
            raise InvalidTransitionError(
                f"Illegal job transition {current.value} -> {target.value}",
                {"from": current.value, "to": target.value},
            )
        now = _utcnow()
        return {
            "status": target,
            "message": message,
            "updated_at": now,
            "event": JobEvent(ts=now, status=target, message=message),
        }

    async def _advance(self, job_id: str, current: JobStatus, target: JobStatus, message: str) -> JobStatus:
        """Progress write; a failed write is logged and the pipeline keeps going."""
        fields = self._transition_fields(current, target, message)
        try:
            await self._orchestrator.store.update(job_id, fields)
        except Exception as exc:
            logger.warning("progress_write_failed job_id=%s status=%s error=%s", job_id, target.value, exc)
        else:
            logger.info("job_status job_id=%s status=%s message=%s", job_id, target.value, message)
        return target

    async def _finalize(
        self,
        job_id: str,
        current: JobStatus,
        target: JobStatus,
        extra: Dict[str, Any],
    ) -> Optional[JobRecord]:
        """Terminal write, retried with exponential backoff."""
        fields = self._transition_fields(current, target, str(extra.get("message") or ""))
        fields.update(extra)
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._final_write_attempts),
                wait=wait_exponential(multiplier=self._final_write_backoff, max=10),
                reraise=True,
            ):
                with attempt:
                    record = await self._orchestrator.store.update(job_id, fields)
        except Exception as exc:
            logger.error(
                "final_write_failed job_id=%s status=%s attempts=%d error=%s",
                job_id,
                target.value,
                self._final_write_attempts,
                exc,
            )
            return None
        logger.info("job_status job_id=%s status=%s message=%s", job_id, target.value, fields["message"])
        return record

    @staticmethod
    def _result(job_id: str, status: JobStatus, message: str, evidence_count: int, started: float) -> JobRunResult:
        return JobRunResult(
            job_id=job_id,
            status=status,
            message=message,
            evidence_count=evidence_count,
            duration_ms=int((perf_counter() - started) * 1000),
        )
