"""Concurrent multi-source fan-out, recency filtering, ranking and capping."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
import logging
from time import perf_counter
from typing import Callable, List, Optional, Sequence

from core import EvidenceItem, EvidenceSet, RecencyWindow
from pipeline.dedup import dedup_ranked
from pipeline.scoring import ScoringWeights, rank_items
from sources.adapters import SourceAdapter


logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def apply_window(items: Sequence[EvidenceItem], window: RecencyWindow, *, now: Optional[datetime] = None) -> List[EvidenceItem]:
    """Strict windows drop stale or undated items; loose windows keep everything."""
    if not window.strict:
        return list(items)
    cutoff = window.cutoff(now)
    kept: List[EvidenceItem] = []
    for item in items:
        published = item.published_at
        if published is None:
            continue
        if published.tzinfo is None:
            published = published.replace(tzinfo=timezone.utc)
        if published < cutoff:
            continue
        kept.append(item)
    return kept


class Aggregator:
    """Fan out to all adapters, merge, filter, score, dedup and cap."""

    def __init__(
        self,
        adapters: Sequence[SourceAdapter],
        *,
        weights: ScoringWeights,
        evidence_cap: int = 50,
        adapter_timeout: float = 25.0,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._adapters = list(adapters)
        self._weights = weights
        self._cap = max(1, int(evidence_cap))
        self._adapter_timeout = float(adapter_timeout)
        self._clock = clock or _utcnow

    async def _fetch_one(self, adapter: SourceAdapter, topic: str, window: RecencyWindow) -> List[EvidenceItem]:
        started = perf_counter()
        try:
            items = await asyncio.wait_for(adapter.fetch(topic, window), timeout=self._adapter_timeout)
        except asyncio.TimeoutError:
            logger.warning("adapter_timeout label=%s timeout=%.1fs", adapter.label, self._adapter_timeout)
            return []
        except Exception as exc:
            logger.warning("adapter_failed label=%s error=%s", adapter.label, exc)
            return []
        logger.debug(
            "adapter_done label=%s count=%d duration_ms=%d",
            adapter.label,
            len(items),
            int((perf_counter() - started) * 1000),
        )
        return list(items or [])

    async def fetch_all(self, topic: str, window: RecencyWindow) -> List[EvidenceItem]:
        """Run every adapter concurrently and flatten in adapter declaration order."""
        batches = await asyncio.gather(*(self._fetch_one(adapter, topic, window) for adapter in self._adapters))
        merged: List[EvidenceItem] = []
        for batch in batches:
            for item in batch:
                merged.append(item.model_copy(update={"fetch_index": len(merged)}))
        return merged

    async def aggregate(self, topic: str, window: RecencyWindow) -> EvidenceSet:
        now = self._clock()
        merged = await self.fetch_all(topic, window)
        eligible = apply_window(merged, window, now=now)
        ranked = rank_items(eligible, self._weights, now=now)
        unique = dedup_ranked(ranked, near_duplicate_threshold=self._weights.near_duplicate_threshold)
        capped = unique[: self._cap]
        logger.info(
            "aggregate_done topic=%s window=%s fetched=%d eligible=%d unique=%d kept=%d",
            topic,
            window.mode.value,
            len(merged),
            len(eligible),
            len(unique),
            len(capped),
        )
        return EvidenceSet(topic=topic, window=window, items=capped)
