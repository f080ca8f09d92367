"""FastAPI app: job trigger and status polling."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Any, Dict, Optional

from fastapi import BackgroundTasks, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from config import get_settings
from core import WindowMode
from utils.logger import configure_logging
from webapp.runtime import get_orchestrator, get_runtime


logger = logging.getLogger(__name__)

app = FastAPI(title="Intel Briefing API")

_MODE_ALIASES = {
    "72h": WindowMode.STRICT_72H,
    "strict": WindowMode.STRICT_72H,
    "strict_72h": WindowMode.STRICT_72H,
    "mode_72h": WindowMode.STRICT_72H,
    "weekly": WindowMode.WEEKLY,
    "7d": WindowMode.WEEKLY,
    "week": WindowMode.WEEKLY,
}


class JobCreatePayload(BaseModel):
    """Accepts `{prompt, mode?}` or `{topic, window_mode?}`, optionally with a caller-chosen jobId."""

    model_config = ConfigDict(populate_by_name=True)

    topic: str = ""
    prompt: str = ""
    window_mode: Optional[str] = None
    mode: Optional[str] = None
    job_id: Optional[str] = Field(default=None, alias="jobId")

    @model_validator(mode="after")
    def _require_topic(self) -> "JobCreatePayload":
        if not (self.topic or self.prompt).strip():
            raise ValueError("topic or prompt is required")
        return self

    @field_validator("window_mode", "mode")
    @classmethod
    def _known_mode(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not str(value).strip():
            return None
        key = str(value).strip().lower()
        if key not in _MODE_ALIASES:
            raise ValueError(f"unknown window mode: {value}")
        return _MODE_ALIASES[key].value

    @property
    def raw_topic(self) -> str:
        return (self.topic or self.prompt).strip()

    @property
    def resolved_mode(self) -> Optional[WindowMode]:
        value = self.window_mode or self.mode
        return WindowMode(value) if value else None


@app.on_event("startup")
def _configure_logging() -> None:
    pipeline_settings = get_settings().pipeline
    configure_logging(pipeline_settings.log_level, pipeline_settings.log_file)


async def _reject_next_job(message: str) -> None:
    orchestrator = get_orchestrator()
    record = await orchestrator.dequeue_next_job()
    if record is None:
        return
    await orchestrator.fail_job(record.job_id, message)
    orchestrator.ack(record.job_id)


async def _run_next_job() -> None:
    try:
        runtime = get_runtime()
    except Exception as exc:
        logger.exception("runtime_unavailable error=%s", exc)
        await _reject_next_job(f"Error: {exc.__class__.__name__}")
        return
    try:
        await runtime.run_next()
    except Exception as exc:
        logger.exception("background_job_failed error=%s", exc)


@app.get("/api/health")
def health() -> Dict[str, Any]:
    orchestrator = get_orchestrator()
    return {
        "ok": True,
        "ts": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        "queued": orchestrator.queue.size(),
    }


@app.post("/api/jobs")
async def create_job(payload: JobCreatePayload, background_tasks: BackgroundTasks) -> Dict[str, Any]:
    orchestrator = get_orchestrator()
    record = await orchestrator.submit(payload.raw_topic, payload.resolved_mode, job_id=payload.job_id)
    background_tasks.add_task(_run_next_job)
    return {
        "jobId": record.job_id,
        "status": record.status.value,
        "message": record.message,
        "topic": record.topic,
        "window": record.window_mode.value,
    }


@app.get("/api/jobs/{job_id}")
async def get_job(job_id: str):
    orchestrator = get_orchestrator()
    record = await orchestrator.get_job(job_id)
    if record is None:
        return JSONResponse(
            status_code=404,
            content={"jobId": job_id, "status": "NOT_FOUND", "message": "job not found", "result": ""},
        )
    return record.to_public()
