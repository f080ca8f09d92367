"""Evidence-to-report bridge: prompt assembly, summarizer call and tolerant response parsing."""

from __future__ import annotations

import asyncio
from datetime import date
import json
import logging
from typing import Any, Optional, Protocol

from core import EvidenceSet, RecencyWindow
from intelligence.llm.base import BaseLLM, LLMResponse, Message
from utils.exceptions import SynthesisError


logger = logging.getLogger(__name__)

_REFUSAL_REASONS = {"refusal", "content_filter", "safety"}

REPORT_SECTIONS = [
    "BLUF (Bottom Line Up Front)",
    "KEY JUDGMENTS",
    "MILITARY & KINETIC ACTIVITY",
    "INFRASTRUCTURE & ENVIRONMENTAL HAZARDS",
    "SOCIAL & INFORMATION ENVIRONMENT",
    "OUTLOOK (24h - 72h)",
    "INTELLIGENCE GAPS",
]


class Summarizer(Protocol):
    """External report generator; returns a response in any supported shape."""

    async def summarize(self, system_prompt: str, evidence_payload: str) -> Any:
        ...


def build_system_prompt(
    topic: str,
    window: RecencyWindow,
    *,
    language: str = "English",
    today: Optional[date] = None,
) -> str:
    """Fixed-structure instruction for the analyst model."""
    day = (today or date.today()).isoformat()
    area = str(topic or "").strip() or "Unknown"
    return f"""ROLE: Chief Intelligence Analyst (J2 division).
OBJECTIVE: Produce a high-level intelligence briefing (SITREP) for political and military decision makers.
TARGET AREA: "{area}" | OBSERVATION WINDOW: {window.label}

PRIMARY DIRECTIVES:
1. ANALYSIS OVER SUMMARY: do not only list what happened, explain what it means ("so what?").
2. PRECISION: use specific designations for units, platforms, places and organisations.
3. SOURCE CRITICISM: when sources contradict each other, state the discrepancy explicitly and name the sources. Never silently pick one version.
4. FILTER: ignore civilian noise (tourism, celebrity news, sport) unless it has security implications.
5. EVIDENCE ONLY: restrict every statement to the supplied evidence items and cite them as Markdown links [publisher](url). If the evidence does not cover something, say so under INTELLIGENCE GAPS.
6. LANGUAGE: write in {language}, in a sober, formal register.

OUTPUT FORMAT (Markdown):

# INTELLIGENCE BRIEFING: {area.upper()}
**Classification:** TLP:AMBER (Open Source / Derivative)
**Date:** {day}

---

## {REPORT_SECTIONS[0]}
At most three sentences on the overall situation and the core threat or event.

## {REPORT_SECTIONS[1]}
One to three analytic conclusions with explicit likelihood wording.

## {REPORT_SECTIONS[2]}
Naval, air, ground, police and paramilitary activity: observation, location, significance, source link.

## {REPORT_SECTIONS[3]}
Critical infrastructure, energy, cyber and weather hazards with a status of Stable / Disrupted / Critical.

## {REPORT_SECTIONS[4]}
Public sentiment (Calm / Tense / Volatile), protests, disinformation and narratives.

## {REPORT_SECTIONS[5]}
Short-term expectations and risks.

## {REPORT_SECTIONS[6]}
What is NOT known from the evidence."""


def serialize_evidence(evidence: EvidenceSet) -> str:
    return json.dumps([item.to_prompt_dict() for item in evidence.items], ensure_ascii=False)


def _text_from_blocks(blocks: Any) -> str:
    parts = []
    for block in list(blocks or []):
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict):
            if block.get("type", "text") == "text":
                parts.append(str(block.get("text") or ""))
        elif getattr(block, "type", "text") == "text":
            parts.append(str(getattr(block, "text", "") or ""))
    return "".join(parts)


def extract_report_text(response: Any) -> str:
    """Pull the report text out of the summarizer response, whatever its shape."""
    finish_reason = None
    text: Any = None

    if isinstance(response, str):
        text = response
    elif isinstance(response, LLMResponse):
        text = response.content
        finish_reason = response.finish_reason
    elif isinstance(response, dict):
        finish_reason = response.get("stop_reason") or response.get("finish_reason")
        if isinstance(response.get("content"), list):
            text = _text_from_blocks(response["content"])
        elif isinstance(response.get("content"), str):
            text = response["content"]
        elif isinstance(response.get("choices"), list) and response["choices"]:
            choice = response["choices"][0] or {}
            finish_reason = finish_reason or choice.get("finish_reason")
            text = (choice.get("message") or {}).get("content") or choice.get("text")
        else:
            text = response.get("completion") or response.get("text")
    elif response is not None:
        finish_reason = getattr(response, "stop_reason", None) or getattr(response, "finish_reason", None)
        content = getattr(response, "content", None)
        text = _text_from_blocks(content) if isinstance(content, list) else content
        if text is None:
            text = getattr(response, "text", None)

    if str(finish_reason or "").lower() in _REFUSAL_REASONS:
        raise SynthesisError("Summarizer refused the request", reason=str(finish_reason))
    if not isinstance(text, str) or not text.strip():
        raise SynthesisError("Summarizer response could not be parsed", response_type=type(response).__name__)
    return text.strip()


class LLMSummarizer:
    """Summarizer backed by a BaseLLM provider."""

    def __init__(self, llm: BaseLLM, *, max_tokens: Optional[int] = None) -> None:
        self.llm = llm
        self.max_tokens = max_tokens

    @property
    def provider(self) -> str:
        return self.llm.provider

    async def summarize(self, system_prompt: str, evidence_payload: str) -> LLMResponse:
        messages = [
            Message.system(system_prompt),
            Message.user(f"INPUT DATA (resolved links):\n{evidence_payload}\n\nGenerate the report now."),
        ]
        kwargs = {"max_tokens": self.max_tokens} if self.max_tokens else {}
        return await self.llm.acomplete(messages, **kwargs)


class ReportBridge:
    """Turn an evidence set into a Markdown report via one summarizer call (no retry)."""

    def __init__(
        self,
        summarizer: Summarizer,
        *,
        language: str = "English",
        timeout: float = 120.0,
    ) -> None:
        self._summarizer = summarizer
        self._language = language
        self._timeout = float(timeout)

    @property
    def provider(self) -> str:
        return str(getattr(self._summarizer, "provider", self._summarizer.__class__.__name__))

    async def synthesize(self, topic: str, window: RecencyWindow, evidence: EvidenceSet) -> str:
        system_prompt = build_system_prompt(topic, window, language=self._language)
        payload = serialize_evidence(evidence)
        logger.info(
            "synthesis_start topic=%s items=%d payload_chars=%d provider=%s",
            topic,
            len(evidence),
            len(payload),
            self.provider,
        )
        try:
            response = await asyncio.wait_for(
                self._summarizer.summarize(system_prompt, payload),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as exc:
            raise SynthesisError(f"Summarizer timed out after {self._timeout:.0f}s", provider=self.provider) from exc
        except SynthesisError:
            raise
        except Exception as exc:
            raise SynthesisError(
                f"Summarizer call failed ({exc.__class__.__name__})",
                provider=self.provider,
                error=str(exc),
            ) from exc

        report = extract_report_text(response)
        logger.info("synthesis_done topic=%s report_chars=%d", topic, len(report))
        return report
