"""URL deduplication and near-duplicate headline collapsing."""

from __future__ import annotations

import re
from typing import List, Optional, Sequence, Set

from core import EvidenceItem


def dedup_by_url(items: Sequence[EvidenceItem]) -> List[EvidenceItem]:
    """Keep the first occurrence per URL; input is expected in rank order."""
    unique: List[EvidenceItem] = []
    seen: Set[str] = set()
    for item in items:
        key = str(item.url or "").strip()
        if key in seen:
            continue
        seen.add(key)
        unique.append(item)
    return unique


def _strip_publisher_suffix(title: str, publisher: str) -> str:
    text = str(title or "").strip()
    name = str(publisher or "").strip()
    if name and text.lower().endswith(f" - {name.lower()}"):
        return text[: -(len(name) + 3)].rstrip()
    return text


def title_tokens(item: EvidenceItem) -> Set[str]:
    title = _strip_publisher_suffix(item.title, item.publisher)
    tokens = re.findall(r"\w+", title.lower())
    return {token for token in tokens if len(token) > 1}


def jaccard(a: Set[str], b: Set[str]) -> float:
    if not a or not b:
        return 0.0
    union = len(a | b)
    return len(a & b) / union if union else 0.0


def collapse_near_duplicates(items: Sequence[EvidenceItem], threshold: float = 0.85) -> List[EvidenceItem]:
    """Drop items whose title token set is at least `threshold` similar to a higher-ranked one."""
    limit = max(0.0, min(1.0, float(threshold)))
    kept: List[EvidenceItem] = []
    kept_tokens: List[Set[str]] = []
    for item in items:
        tokens = title_tokens(item)
        if any(jaccard(tokens, other) >= limit for other in kept_tokens):
            continue
        kept.append(item)
        kept_tokens.append(tokens)
    return kept


def dedup_ranked(
    items: Sequence[EvidenceItem],
    *,
    near_duplicate_threshold: Optional[float] = None,
) -> List[EvidenceItem]:
    unique = dedup_by_url(items)
    if near_duplicate_threshold is None:
        return unique
    return collapse_near_duplicates(unique, threshold=near_duplicate_threshold)
