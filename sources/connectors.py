"""HTTP helpers and feed/search page parsers for source adapters."""

from __future__ import annotations

from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
import html as html_lib
import re
import xml.etree.ElementTree as ET
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import parse_qs, quote_plus, unquote, urlparse

from bs4 import BeautifulSoup
import httpx


GOOGLE_NEWS_RSS = "https://news.google.com/rss/search"
DUCKDUCKGO_HTML = "https://html.duckduckgo.com/html/"


def _parse_datetime(value: Any) -> Optional[datetime]:
    text = str(value or "").strip()
    if not text:
        return None

    normalized = text.replace("Z", "+00:00")
    try:
        dt = datetime.fromisoformat(normalized)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    except Exception:
        pass

    try:
        dt2 = parsedate_to_datetime(text)
        if dt2.tzinfo is None:
            dt2 = dt2.replace(tzinfo=timezone.utc)
        return dt2.astimezone(timezone.utc)
    except Exception:
        return None


def _safe_truncate(text: str, max_len: int = 300) -> str:
    value = re.sub(r"\s+", " ", str(text or "")).strip()
    if len(value) <= max_len:
        return value
    return value[: max_len - 3].rstrip() + "..."


def _strip_html(value: str) -> str:
    text = str(value or "")
    text = re.sub(r"<script[^>]*>.*?</script>", " ", text, flags=re.IGNORECASE | re.DOTALL)
    text = re.sub(r"<style[^>]*>.*?</style>", " ", text, flags=re.IGNORECASE | re.DOTALL)
    text = re.sub(r"<[^>]+>", " ", text)
    text = html_lib.unescape(text)
    return re.sub(r"\s+", " ", text).strip()


def _domain(url: str) -> str:
    try:
        host = str(urlparse(str(url or "")).netloc or "").lower()
    except ValueError:
        return ""
    return host[4:] if host.startswith("www.") else host


async def _http_get_text(url: str, *, headers: Optional[Dict[str, str]] = None, timeout: float = 12.0) -> str:
    async with httpx.AsyncClient(timeout=httpx.Timeout(timeout), follow_redirects=True) as client:
        response = await client.get(url, headers=headers)
        response.raise_for_status()
        return str(response.text or "")


def build_boolean_query(topic: str, groups: Optional[Sequence[Sequence[str]]] = None) -> str:
    """Combine a topic with OR-groups: `topic AND (a OR b) AND (c OR d)`."""
    seed = str(topic or "").strip()
    parts = [seed] if seed else []
    for group in list(groups or []):
        terms = [str(term or "").strip() for term in group if str(term or "").strip()]
        if not terms:
            continue
        parts.append("(" + " OR ".join(terms) + ")")
    return " AND ".join(parts)


def google_news_feed_url(query: str, *, hl: str, gl: str, ceid: str, time_param: str) -> str:
    return (
        f"{GOOGLE_NEWS_RSS}?hl={hl}&gl={gl}&ceid={ceid}&scoring=n&tbs={time_param}"
        f"&q={quote_plus(query)}"
    )


def duckduckgo_search_url(query: str, *, region: str) -> str:
    return f"{DUCKDUCKGO_HTML}?q={quote_plus(query)}&kl={region}"


def is_blacklisted(values: Sequence[str], blacklist: Sequence[str]) -> bool:
    lowered = [str(value or "").lower() for value in values if value]
    for marker in blacklist:
        token = str(marker or "").strip().lower()
        if token and any(token in value for value in lowered):
            return True
    return False


def _rss_text(node: ET.Element, tag: str) -> str:
    child = node.find(tag)
    if child is None or child.text is None:
        return ""
    return child.text.strip()


def parse_rss_entries(xml_text: str, *, summary_max_chars: int = 300) -> List[Dict[str, Any]]:
    """Parse RSS `<item>` nodes into plain dicts. Raises on malformed XML."""
    root = ET.fromstring(xml_text)
    entries: List[Dict[str, Any]] = []
    for entry in root.findall(".//item"):
        title = _strip_html(_rss_text(entry, "title"))
        link = _rss_text(entry, "link")
        if not title or not link:
            continue
        source_node = entry.find("source")
        publisher = ""
        publisher_url = ""
        if source_node is not None:
            publisher = str(source_node.text or "").strip()
            publisher_url = str(source_node.get("url") or "").strip()
        entries.append(
            {
                "title": title,
                "url": link,
                "summary": _safe_truncate(_strip_html(_rss_text(entry, "description")), max_len=summary_max_chars),
                "published_at": _parse_datetime(_rss_text(entry, "pubDate")),
                "publisher": publisher or _domain(publisher_url) or "Source",
                "publisher_url": publisher_url,
            }
        )
    return entries


def decode_duckduckgo_link(href: str) -> str:
    """Unwrap `//duckduckgo.com/l/?uddg=<encoded>` result links."""
    value = str(href or "").strip()
    if value.startswith("//"):
        value = "https:" + value
    parsed = urlparse(value)
    if "duckduckgo.com" in parsed.netloc and parsed.path.startswith("/l/"):
        target = parse_qs(parsed.query).get("uddg")
        if target:
            return unquote(target[0])
    return value


def parse_search_results(html: str, *, max_results: int = 9, summary_max_chars: int = 300) -> List[Dict[str, Any]]:
    """Parse a DuckDuckGo HTML results page into plain dicts."""
    soup = BeautifulSoup(html, "lxml")
    rows: List[Dict[str, Any]] = []
    for node in soup.select(".result")[: max(1, int(max_results))]:
        anchor = node.select_one(".result__a")
        if anchor is None:
            continue
        title = anchor.get_text(" ", strip=True)
        href = str(anchor.get("href") or "").strip()
        if not title or not href or "duckduckgo.com/y.js" in href:
            continue
        url = decode_duckduckgo_link(href)
        snippet_node = node.select_one(".result__snippet")
        snippet = snippet_node.get_text(" ", strip=True) if snippet_node is not None else ""
        rows.append(
            {
                "title": title,
                "url": url,
                "summary": _safe_truncate(snippet, max_len=summary_max_chars),
                "publisher": _domain(url) or "DuckDuckGo",
            }
        )
    return rows
