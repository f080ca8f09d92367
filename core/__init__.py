"""Core contracts and shared types for the briefing pipeline."""

from .contracts import (
    MODE_72H_MARKER,
    EvidenceItem,
    EvidenceSet,
    JobEvent,
    JobRecord,
    JobStatus,
    RecencyWindow,
    TriggerPayload,
    WindowMode,
    can_transition,
    parse_trigger_topic,
)

__all__ = [
    "MODE_72H_MARKER",
    "EvidenceItem",
    "EvidenceSet",
    "JobEvent",
    "JobRecord",
    "JobStatus",
    "RecencyWindow",
    "TriggerPayload",
    "WindowMode",
    "can_transition",
    "parse_trigger_topic",
]
