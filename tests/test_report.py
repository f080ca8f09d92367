from __future__ import annotations

import asyncio
from datetime import date, datetime, timezone
import json
from types import SimpleNamespace

import pytest

from core import EvidenceItem, EvidenceSet, RecencyWindow, WindowMode
from intelligence.llm.base import BaseLLM, LLMResponse, Message, MessageRole
from pipeline.report import (
    REPORT_SECTIONS,
    LLMSummarizer,
    ReportBridge,
    build_system_prompt,
    extract_report_text,
    serialize_evidence,
)
from utils.exceptions import SynthesisError


STRICT = RecencyWindow(mode=WindowMode.STRICT_72H)


def _evidence() -> EvidenceSet:
    return EvidenceSet(
        topic="Kiel",
        window=STRICT,
        items=[
            EvidenceItem(
                source_label="DEFENSE",
                publisher="Reuters",
                title="Navy escort off Kiel",
                summary="Frigate shadowing a cargo vessel",
                url="https://www.reuters.com/kiel",
                published_at=datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc),
                score=18,
                category="security",
            ),
            EvidenceItem(source_label="WEATHER_ALERT", title="Storm warning", url="https://www.dwd.de/w", category="weather"),
        ],
    )


class StaticSummarizer:
    def __init__(self, response=None, *, error: Exception = None, delay: float = 0.0) -> None:
        self.response = response
        self.error = error
        self.delay = delay
        self.calls = []

    async def summarize(self, system_prompt: str, evidence_payload: str):
        self.calls.append((system_prompt, evidence_payload))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.response


class RecordingLLM(BaseLLM):
    def __init__(self) -> None:
        super().__init__(model="fake-model")
        self.seen = []

    @property
    def provider(self) -> str:
        return "fake"

    async def acomplete(self, messages, **kwargs) -> LLMResponse:
        self.seen.append((messages, kwargs))
        return LLMResponse(content="# INTELLIGENCE BRIEFING: KIEL", model=self.model, finish_reason="end_turn")


def test_system_prompt_has_fixed_structure() -> None:
    prompt = build_system_prompt("Kiel", STRICT, language="German", today=date(2026, 3, 1))

    assert "Chief Intelligence Analyst" in prompt
    assert 'TARGET AREA: "Kiel"' in prompt
    assert "ACUTE (72h)" in prompt
    assert "# INTELLIGENCE BRIEFING: KIEL" in prompt
    assert "**Date:** 2026-03-01" in prompt
    assert "write in German" in prompt
    assert "discrepancy explicitly" in prompt
    for section in REPORT_SECTIONS:
        assert f"## {section}" in prompt


def test_serialize_evidence_is_json_list() -> None:
    payload = json.loads(serialize_evidence(_evidence()))
    assert payload[0] == {
        "label": "DEFENSE",
        "category": "security",
        "publisher": "Reuters",
        "title": "Navy escort off Kiel",
        "summary": "Frigate shadowing a cargo vessel",
        "url": "https://www.reuters.com/kiel",
        "published": "2026-03-01T10:00:00+00:00",
        "score": 18,
    }
    assert payload[1]["published"] is None


@pytest.mark.parametrize(
    "response",
    [
        "  # Report  ",
        LLMResponse(content="# Report", model="m"),
        {"content": [{"type": "text", "text": "# Re"}, {"type": "tool_use", "id": "x"}, {"type": "text", "text": "port"}]},
        {"choices": [{"message": {"content": "# Report"}, "finish_reason": "stop"}]},
        {"completion": "# Report"},
        SimpleNamespace(content=[SimpleNamespace(type="text", text="# Report")], stop_reason="end_turn"),
        SimpleNamespace(text="# Report"),
    ],
)
def test_extract_report_text_accepts_known_shapes(response) -> None:
    assert extract_report_text(response) == "# Report"


@pytest.mark.parametrize(
    "response",
    [
        None,
        "   ",
        {"content": []},
        {"choices": []},
        {"unexpected": True},
        LLMResponse(content="I can't help with that", model="m", finish_reason="refusal"),
        {"choices": [{"message": {"content": "partial"}, "finish_reason": "content_filter"}]},
        {"content": [{"type": "text", "text": "No."}], "stop_reason": "refusal"},
    ],
)
def test_extract_report_text_rejects_unusable_responses(response) -> None:
    with pytest.raises(SynthesisError):
        extract_report_text(response)


@pytest.mark.asyncio
async def test_bridge_returns_report_and_sends_prompt_and_payload() -> None:
    summarizer = StaticSummarizer({"content": [{"type": "text", "text": "# INTELLIGENCE BRIEFING: KIEL\n..."}]})
    report = await ReportBridge(summarizer).synthesize("Kiel", STRICT, _evidence())

    assert report.startswith("# INTELLIGENCE BRIEFING: KIEL")
    system_prompt, payload = summarizer.calls[0]
    assert 'TARGET AREA: "Kiel"' in system_prompt
    assert json.loads(payload)[0]["url"] == "https://www.reuters.com/kiel"


@pytest.mark.asyncio
async def test_bridge_wraps_summarizer_errors() -> None:
    summarizer = StaticSummarizer(error=ConnectionError("reset by peer"))
    with pytest.raises(SynthesisError) as exc_info:
        await ReportBridge(summarizer).synthesize("Kiel", STRICT, _evidence())
    assert "ConnectionError" in exc_info.value.message
    assert len(summarizer.calls) == 1


@pytest.mark.asyncio
async def test_bridge_times_out() -> None:
    summarizer = StaticSummarizer("# late", delay=5)
    with pytest.raises(SynthesisError) as exc_info:
        await ReportBridge(summarizer, timeout=0.05).synthesize("Kiel", STRICT, _evidence())
    assert "timed out" in exc_info.value.message


@pytest.mark.asyncio
async def test_llm_summarizer_builds_system_and_user_messages() -> None:
    llm = RecordingLLM()
    summarizer = LLMSummarizer(llm, max_tokens=1024)

    report = await ReportBridge(summarizer).synthesize("Kiel", STRICT, _evidence())

    assert report == "# INTELLIGENCE BRIEFING: KIEL"
    messages, kwargs = llm.seen[0]
    assert [message.role for message in messages] == [MessageRole.SYSTEM, MessageRole.USER]
    assert isinstance(messages[0], Message)
    assert "reuters.com/kiel" in messages[1].content
    assert messages[1].content.endswith("Generate the report now.")
    assert kwargs == {"max_tokens": 1024}
    assert summarizer.provider == "fake"
