from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import List

import pytest

from config.settings import ScoringSettings
from core import EvidenceItem, RecencyWindow, WindowMode
from pipeline.aggregator import Aggregator, apply_window
from pipeline.scoring import ScoringWeights


NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
STRICT = RecencyWindow(mode=WindowMode.STRICT_72H)
WEEKLY = RecencyWindow(mode=WindowMode.WEEKLY)


class FakeAdapter:
    def __init__(self, label: str, items: List[EvidenceItem], *, delay: float = 0.0, error: Exception = None) -> None:
        self.label = label
        self._items = items
        self._delay = delay
        self._error = error
        self.calls = []

    async def fetch(self, topic: str, window: RecencyWindow) -> List[EvidenceItem]:
        self.calls.append((topic, window.mode))
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        return list(self._items)


def _item(label: str, title: str, url: str, hours_ago=None, publisher: str = "") -> EvidenceItem:
    return EvidenceItem(
        source_label=label,
        publisher=publisher,
        title=title,
        url=url,
        published_at=(NOW - timedelta(hours=hours_ago)) if hours_ago is not None else None,
    )


def _aggregator(adapters, **kwargs) -> Aggregator:
    weights = ScoringWeights.from_settings(ScoringSettings())
    return Aggregator(adapters, weights=weights, clock=lambda: NOW, **kwargs)


@pytest.mark.asyncio
async def test_berlin_strict_window_dedups_and_ranks() -> None:
    main = FakeAdapter(
        "MAIN_DE",
        [
            _item("MAIN_DE", "Berlin transport strike continues", "https://example.org/strike", hours_ago=30),
            _item("MAIN_DE", "Police cordon at Berlin embassy", "https://www.reuters.com/berlin-embassy", hours_ago=2),
        ],
    )
    defense = FakeAdapter(
        "DEFENSE",
        [_item("DEFENSE", "Police cordon at Berlin embassy - Reuters", "https://www.reuters.com/berlin-embassy", hours_ago=2)],
    )

    evidence = await _aggregator([main, defense]).aggregate("Berlin", STRICT)

    assert evidence.topic == "Berlin"
    assert evidence.window.strict is True
    assert evidence.urls() == ["https://www.reuters.com/berlin-embassy", "https://example.org/strike"]
    assert [item.score for item in evidence.items] == [18, 0]
    assert evidence.items[0].source_label == "MAIN_DE"
    assert main.calls == [("Berlin", WindowMode.STRICT_72H)]


def test_apply_window_strict_drops_stale_and_undated() -> None:
    items = [
        _item("A", "fresh", "https://e.com/1", hours_ago=1),
        _item("A", "edge", "https://e.com/2", hours_ago=71.5),
        _item("A", "stale", "https://e.com/3", hours_ago=80),
        _item("A", "undated", "https://e.com/4"),
    ]
    assert [item.title for item in apply_window(items, STRICT, now=NOW)] == ["fresh", "edge"]
    assert len(apply_window(items, WEEKLY, now=NOW)) == 4


@pytest.mark.asyncio
async def test_failing_and_slow_adapters_do_not_block_siblings() -> None:
    good = FakeAdapter("MAIN_EN", [_item("MAIN_EN", "Navy exercise in Baltic", "https://e.com/navy", hours_ago=1)])
    broken = FakeAdapter("DEFENSE", [], error=RuntimeError("feed down"))
    slow = FakeAdapter("SOCIAL_SIGNAL", [_item("SOCIAL_SIGNAL", "late", "https://e.com/late", hours_ago=1)], delay=5)

    evidence = await _aggregator([broken, slow, good], adapter_timeout=0.1).aggregate("Baltic", WEEKLY)

    assert evidence.urls() == ["https://e.com/navy"]


@pytest.mark.asyncio
async def test_all_adapters_empty_gives_empty_set() -> None:
    evidence = await _aggregator([FakeAdapter("A", []), FakeAdapter("B", [])]).aggregate("Paris", WEEKLY)
    assert evidence.is_empty
    assert len(evidence) == 0


@pytest.mark.asyncio
async def test_fetch_index_follows_adapter_declaration_order() -> None:
    slow_first = FakeAdapter("FIRST", [_item("FIRST", "one", "https://e.com/1")], delay=0.05)
    fast_second = FakeAdapter("SECOND", [_item("SECOND", "two", "https://e.com/2"), _item("SECOND", "three", "https://e.com/3")])

    merged = await _aggregator([slow_first, fast_second]).fetch_all("x", WEEKLY)
    assert [(item.title, item.fetch_index) for item in merged] == [("one", 0), ("two", 1), ("three", 2)]


@pytest.mark.asyncio
async def test_cap_keeps_top_ranked_items() -> None:
    items = [_item("A", f"Report number {idx} alpha{idx}", f"https://e.com/{idx}", hours_ago=100) for idx in range(10)]
    items.append(_item("A", "Military build-up", "https://e.com/mil", hours_ago=100))

    evidence = await _aggregator([FakeAdapter("A", items)], evidence_cap=3).aggregate("x", WEEKLY)

    assert evidence.urls() == ["https://e.com/mil", "https://e.com/0", "https://e.com/1"]
