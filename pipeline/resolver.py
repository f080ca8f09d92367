"""Layered resolution of aggregator/redirect links to canonical destination URLs."""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import re
from typing import List, Optional, Sequence
from urllib.parse import parse_qs, unquote, urlparse

import httpx

from config.settings import ResolverSettings
from core import EvidenceItem
from utils.exceptions import ResolutionFailure


logger = logging.getLogger(__name__)

_EMBEDDED_URL_RE = re.compile(r"https?://[a-zA-Z0-9\-._~:/?#\[\]@!$&'()*+,;=%]+")
_BASE64_SEGMENT_RE = re.compile(r"^[A-Za-z0-9_\-+/]{16,}={0,2}$")
_REDIRECT_PARAMS = ("uddg", "url", "q", "u")


async def _http_head_final_url(url: str, *, timeout: float, max_redirects: int) -> str:
    async with httpx.AsyncClient(
        timeout=httpx.Timeout(timeout),
        follow_redirects=True,
        max_redirects=max(0, int(max_redirects)),
    ) as client:
        response = await client.head(url)
        if not 200 <= response.status_code < 400:
            raise ResolutionFailure(f"unexpected status {response.status_code}", url=url)
        return str(response.url)


def _is_http_url(value: str) -> bool:
    try:
        parsed = urlparse(str(value or ""))
    except ValueError:
        return False
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


class LinkResolver:
    """Turn redirect/obfuscated aggregator URLs into direct links; never raises."""

    def __init__(self, settings: Optional[ResolverSettings] = None) -> None:
        cfg = settings or ResolverSettings()
        self.timeout = float(cfg.timeout)
        self.max_hops = int(cfg.max_hops)
        self.patterns = [str(item).lower() for item in cfg.aggregator_patterns if str(item).strip()]

    def is_aggregator_url(self, url: str) -> bool:
        lowered = str(url or "").lower()
        return any(pattern in lowered for pattern in self.patterns)

    def _is_direct(self, url: str) -> bool:
        return _is_http_url(url) and not self.is_aggregator_url(url)

    async def resolve(self, raw_url: str) -> str:
        url = str(raw_url or "").strip()
        if not url or not self.is_aggregator_url(url):
            return raw_url

        try:
            final_url = await _http_head_final_url(url, timeout=self.timeout, max_redirects=self.max_hops)
            if final_url and final_url != url and self._is_direct(final_url):
                return final_url
        except Exception as exc:
            logger.debug("resolve_head_failed url=%s error=%s", url, exc)

        decoded = self.decode_base64_segment(url)
        if decoded and self._is_direct(decoded):
            return decoded

        unwrapped = self.decode_percent(url)
        if unwrapped:
            return unwrapped

        logger.debug("resolve_unresolved %s", ResolutionFailure("all strategies failed", url=url))
        return raw_url

    @staticmethod
    def decode_base64_segment(url: str) -> Optional[str]:
        """Decode a base64-looking path segment and extract an embedded http(s) URL."""
        try:
            path = urlparse(url).path
        except ValueError:
            return None
        segments = [segment for segment in path.split("/") if segment]
        if "articles" in segments:
            idx = segments.index("articles")
            segments = segments[idx + 1:idx + 2] + segments[:idx] + segments[idx + 2:]

        for segment in segments:
            if not _BASE64_SEGMENT_RE.match(segment):
                continue
            padded = segment + "=" * (-len(segment) % 4)
            try:
                raw = base64.urlsafe_b64decode(padded.replace("+", "-").replace("/", "_"))
            except (binascii.Error, ValueError):
                continue
            match = _EMBEDDED_URL_RE.search(raw.decode("latin-1"))
            if match:
                return match.group(0)
        return None

    def decode_percent(self, url: str) -> Optional[str]:
        """Unwrap percent-encoded redirect targets; accept only direct links."""
        try:
            query = parse_qs(urlparse(url).query)
        except ValueError:
            query = {}
        for key in _REDIRECT_PARAMS:
            for value in list(query.get(key) or []):
                candidate = unquote(str(value or "")).strip()
                if self._is_direct(candidate):
                    return candidate

        decoded = unquote(url)
        if decoded != url and self._is_direct(decoded):
            return decoded
        return None

    async def resolve_many(self, items: Sequence[EvidenceItem]) -> List[EvidenceItem]:
        """Resolve all given items concurrently; order is preserved."""
        urls = await asyncio.gather(*(self.resolve(item.url) for item in items))
        resolved = [item.model_copy(update={"url": url}) for item, url in zip(items, urls)]
        changed = sum(1 for item, url in zip(items, urls) if url != item.url)
        logger.info("links_resolved total=%d changed=%d", len(items), changed)
        return resolved
