"""Briefing pipeline: aggregation, link resolution, report synthesis and job runtime."""

from .aggregator import Aggregator, apply_window
from .dedup import collapse_near_duplicates, dedup_by_url, dedup_ranked
from .report import LLMSummarizer, ReportBridge, Summarizer, build_system_prompt, extract_report_text
from .resolver import LinkResolver
from .runtime import JobPipelineRuntime, JobRunResult, PipelineStrategy
from .scoring import ScoringWeights, rank_items, score_item

__all__ = [
    "Aggregator",
    "JobPipelineRuntime",
    "JobRunResult",
    "LLMSummarizer",
    "LinkResolver",
    "PipelineStrategy",
    "ReportBridge",
    "ScoringWeights",
    "Summarizer",
    "apply_window",
    "build_system_prompt",
    "collapse_near_duplicates",
    "dedup_by_url",
    "dedup_ranked",
    "extract_report_text",
    "rank_items",
    "score_item",
]
