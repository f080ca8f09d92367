"""Canonical data contracts for the briefing job pipeline."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


MODE_72H_MARKER = "MODE_72H:"
REGION_SCAN_MARKER = "Region Scan:"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobStatus(str, Enum):
    """Job lifecycle states, strictly forward-moving."""

    QUEUED = "QUEUED"
    FETCHING = "FETCHING"
    RESOLVING = "RESOLVING"
    ANALYZING = "ANALYZING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in {JobStatus.COMPLETED, JobStatus.FAILED}


_FORWARD_ORDER = [
    JobStatus.QUEUED,
    JobStatus.FETCHING,
    JobStatus.RESOLVING,
    JobStatus.ANALYZING,
    JobStatus.COMPLETED,
]


def can_transition(current: JobStatus, target: JobStatus) -> bool:
    """True when `current -> target` is a legal single step."""
    if current.is_terminal:
        return False
    if target == JobStatus.FAILED:
        return True
    idx = _FORWARD_ORDER.index(current)
    return idx + 1 < len(_FORWARD_ORDER) and _FORWARD_ORDER[idx + 1] == target


class WindowMode(str, Enum):
    """Recency window mode."""

    STRICT_72H = "72h"
    WEEKLY = "weekly"


class RecencyWindow(BaseModel):
    """Time filter mode controlling which items are eligible."""

    mode: WindowMode = WindowMode.WEEKLY

    @classmethod
    def from_mode(cls, mode: Any) -> "RecencyWindow":
        if isinstance(mode, RecencyWindow):
            return mode
        token = str(getattr(mode, "value", mode) or "").strip().lower()
        if token in {"72h", "strict", "strict_72h", "mode_72h"}:
            return cls(mode=WindowMode.STRICT_72H)
        return cls(mode=WindowMode.WEEKLY)

    @property
    def strict(self) -> bool:
        return self.mode == WindowMode.STRICT_72H

    @property
    def hours(self) -> int:
        return 72 if self.strict else 24 * 7

    @property
    def search_param(self) -> str:
        return "qdr:h72" if self.strict else "qdr:w"

    @property
    def label(self) -> str:
        return "ACUTE (72h)" if self.strict else "7 DAYS"

    def cutoff(self, now: Optional[datetime] = None) -> datetime:
        return (now or _utcnow()) - timedelta(hours=self.hours)


def parse_trigger_topic(raw_topic: Any) -> Tuple[str, WindowMode]:
    """Strip the window marker (and region-scan prefix) from a submitted topic."""
    text = str(raw_topic or "").strip()
    mode = WindowMode.WEEKLY
    if text.startswith(MODE_72H_MARKER):
        mode = WindowMode.STRICT_72H
        text = text[len(MODE_72H_MARKER):]
    text = text.replace(REGION_SCAN_MARKER, "").strip()
    return text or "Unknown", mode


class EvidenceItem(BaseModel):
    """One normalized unit of fetched information."""

    source_label: str
    publisher: str = ""
    title: str
    summary: str = ""
    url: str
    published_at: Optional[datetime] = None
    score: int = 0
    category: Literal["security", "weather", "rumor", "general"] = "general"
    date_confidence: Literal["high", "low"] = "high"
    fetch_index: int = 0

    @field_validator("title", "url", mode="before")
    @classmethod
    def _strip_required(cls, value: Any) -> str:
        text = str(value or "").strip()
        if not text:
            raise ValueError("value is required")
        return text

    def age_hours(self, now: Optional[datetime] = None) -> Optional[float]:
        if self.published_at is None:
            return None
        published = self.published_at
        if published.tzinfo is None:
            published = published.replace(tzinfo=timezone.utc)
        return ((now or _utcnow()) - published).total_seconds() / 3600.0

    def to_prompt_dict(self) -> Dict[str, Any]:
        return {
            "label": self.source_label,
            "category": self.category,
            "publisher": self.publisher,
            "title": self.title,
            "summary": self.summary,
            "url": self.url,
            "published": self.published_at.isoformat() if self.published_at else None,
            "score": self.score,
        }


class EvidenceSet(BaseModel):
    """Ranked, deduplicated, capped evidence passed into synthesis."""

    topic: str
    window: RecencyWindow = Field(default_factory=RecencyWindow)
    items: List[EvidenceItem] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def urls(self) -> List[str]:
        return [item.url for item in self.items]


class JobEvent(BaseModel):
    """Status transition event recorded on the job."""

    ts: datetime = Field(default_factory=_utcnow)
    status: JobStatus
    message: str = ""


class JobRecord(BaseModel):
    """Persisted job record observed by pollers."""

    job_id: str
    status: JobStatus = JobStatus.QUEUED
    topic: str
    raw_topic: str = ""
    window_mode: WindowMode = WindowMode.WEEKLY
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    message: str = ""
    result: Optional[str] = None
    evidence_count: Optional[int] = None
    events: List[JobEvent] = Field(default_factory=list)

    @property
    def window(self) -> RecencyWindow:
        return RecencyWindow(mode=self.window_mode)

    def to_public(self) -> Dict[str, Any]:
        return {
            "jobId": self.job_id,
            "status": self.status.value,
            "message": self.message,
            "result": self.result or "",
        }


class TriggerPayload(BaseModel):
    """Inbound trigger handed over by the request router."""

    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(alias="jobId")
    topic: str = ""

    @field_validator("job_id", mode="before")
    @classmethod
    def _non_empty_job_id(cls, value: Any) -> str:
        text = str(value or "").strip()
        if not text:
            raise ValueError("jobId is required")
        return text

    def parsed(self) -> Tuple[str, WindowMode]:
        return parse_trigger_topic(self.topic)
