"""Intel relevance scoring and stable ranking for evidence items."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

from config.settings import ScoringSettings
from core import EvidenceItem


@dataclass(frozen=True)
class ScoringWeights:
    """Injected scoring configuration: lexicon, trusted domains and bonus values."""

    security_keywords: Tuple[str, ...]
    priority_domains: Tuple[str, ...]
    keyword_bonus: int = 10
    domain_bonus: int = 5
    freshness_bonus: int = 3
    freshness_hours: float = 4.0
    recent_bonus: int = 1
    recent_hours: float = 24.0
    near_duplicate_threshold: Optional[float] = 0.85

    @classmethod
    def from_settings(cls, settings: Optional[ScoringSettings] = None) -> "ScoringWeights":
        cfg = settings or ScoringSettings()
        return cls(
            security_keywords=tuple(str(item).lower() for item in cfg.security_keywords if str(item).strip()),
            priority_domains=tuple(str(item).lower() for item in cfg.priority_domains if str(item).strip()),
            keyword_bonus=int(cfg.keyword_bonus),
            domain_bonus=int(cfg.domain_bonus),
            freshness_bonus=int(cfg.freshness_bonus),
            freshness_hours=float(cfg.freshness_hours),
            recent_bonus=int(cfg.recent_bonus),
            recent_hours=float(cfg.recent_hours),
            near_duplicate_threshold=float(cfg.near_duplicate_threshold) if cfg.near_duplicate_enabled else None,
        )


def has_security_signal(item: EvidenceItem, weights: ScoringWeights) -> bool:
    text = f"{item.title} {item.summary}".lower()
    return any(keyword in text for keyword in weights.security_keywords)


def has_priority_domain(item: EvidenceItem, weights: ScoringWeights) -> bool:
    haystack = f"{item.url} {item.publisher}".lower()
    return any(domain in haystack for domain in weights.priority_domains)


def freshness_points(item: EvidenceItem, weights: ScoringWeights, *, now: Optional[datetime] = None) -> int:
    # Search hits carry the fetch time, not a publication date.
    if item.date_confidence == "low":
        return 0
    age = item.age_hours(now)
    if age is None:
        return 0
    if age < weights.freshness_hours:
        return weights.freshness_bonus
    if age < weights.recent_hours:
        return weights.recent_bonus
    return 0


def score_item(item: EvidenceItem, weights: ScoringWeights, *, now: Optional[datetime] = None) -> int:
    """Keyword hit, trusted domain and freshness bonuses summed into one integer."""
    score = 0
    if has_security_signal(item, weights):
        score += weights.keyword_bonus
    if has_priority_domain(item, weights):
        score += weights.domain_bonus
    score += freshness_points(item, weights, now=now)
    return score


def rank_items(
    items: Sequence[EvidenceItem],
    weights: ScoringWeights,
    *,
    now: Optional[datetime] = None,
) -> List[EvidenceItem]:
    """Score every item and sort by descending score; ties keep fetch order."""
    current = now or datetime.now(timezone.utc)
    scored = [item.model_copy(update={"score": score_item(item, weights, now=current)}) for item in items]
    return sorted(scored, key=lambda item: (-item.score, item.fetch_index))
