"""
Source adapters
Feed-style (Google News RSS) and search-style (DuckDuckGo HTML) adapters that
map one external endpoint into EvidenceItem lists.
"""
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import List, Optional, Sequence
import asyncio
import logging

from config.settings import SourceSettings
from core import EvidenceItem, RecencyWindow
from sources import connectors
from utils.exceptions import SourceUnavailable


logger = logging.getLogger(__name__)


class SourceAdapter(ABC):
    """
    Base adapter.

    `fetch` never raises: timeouts and any fetch/parse error are logged as
    warnings and turn into an empty result for this source only.
    """

    kind = "base"

    def __init__(
        self,
        label: str,
        *,
        category: str = "general",
        settings: Optional[SourceSettings] = None,
        timeout: Optional[float] = None,
    ):
        self.label = label
        self.category = category
        self.settings = settings or SourceSettings()
        self.timeout = float(timeout) if timeout is not None else self._default_timeout()

    def _default_timeout(self) -> float:
        return float(self.settings.feed_timeout)

    @property
    def headers(self):
        return {"User-Agent": self.settings.user_agent}

    @abstractmethod
    def build_query(self, topic: str) -> str:
        """Source-specific query for a topic"""
        pass

    @abstractmethod
    async def _fetch_items(self, query: str, window: RecencyWindow) -> List[EvidenceItem]:
        pass

    async def fetch(self, topic: str, window: RecencyWindow) -> List[EvidenceItem]:
        query = self.build_query(topic)
        try:
            items = await asyncio.wait_for(self._fetch_items(query, window), timeout=self.timeout)
        except asyncio.TimeoutError:
            error = SourceUnavailable(f"timeout>{self.timeout:.1f}s", source=self.label)
            logger.warning("source_unavailable label=%s error=%s", self.label, error)
            return []
        except Exception as exc:
            error = SourceUnavailable(f"{exc.__class__.__name__}: {exc}", source=self.label)
            logger.warning("source_unavailable label=%s error=%s", self.label, error)
            return []

        kept = [
            item
            for item in items
            if not connectors.is_blacklisted([item.url, item.publisher], self.settings.blacklist_domains)
        ]
        kept = kept[: max(1, int(self.settings.max_items_per_source))]
        logger.info("source_fetched label=%s kind=%s count=%d", self.label, self.kind, len(kept))
        return kept

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(label={self.label}, category={self.category})"


class FeedAdapter(SourceAdapter):
    """Google News RSS search for one locale and keyword group."""

    kind = "feed"

    def __init__(
        self,
        label: str,
        *,
        hl: str = "en-US",
        gl: str = "US",
        ceid: str = "US:en",
        boost_groups: Optional[Sequence[Sequence[str]]] = None,
        category: str = "general",
        settings: Optional[SourceSettings] = None,
        timeout: Optional[float] = None,
    ):
        super().__init__(label, category=category, settings=settings, timeout=timeout)
        self.hl = hl
        self.gl = gl
        self.ceid = ceid
        self.boost_groups = [list(group) for group in list(boost_groups or [])]

    def build_query(self, topic: str) -> str:
        return connectors.build_boolean_query(topic, self.boost_groups)

    def feed_url(self, query: str, window: RecencyWindow) -> str:
        return connectors.google_news_feed_url(
            query,
            hl=self.hl,
            gl=self.gl,
            ceid=self.ceid,
            time_param=window.search_param,
        )

    async def _fetch_items(self, query: str, window: RecencyWindow) -> List[EvidenceItem]:
        xml_text = await connectors._http_get_text(
            self.feed_url(query, window),
            headers=self.headers,
            timeout=self.timeout,
        )
        entries = connectors.parse_rss_entries(xml_text, summary_max_chars=self.settings.summary_max_chars)

        items: List[EvidenceItem] = []
        for entry in entries:
            if connectors.is_blacklisted([entry["url"], entry["publisher_url"]], self.settings.blacklist_domains):
                continue
            items.append(
                EvidenceItem(
                    source_label=self.label,
                    publisher=entry["publisher"],
                    title=entry["title"],
                    summary=entry["summary"],
                    url=entry["url"],
                    published_at=entry["published_at"],
                    category=self.category,
                    date_confidence="high",
                )
            )
        return items


class SearchAdapter(SourceAdapter):
    """DuckDuckGo HTML search; results carry no date and are stamped "now"."""

    kind = "search"

    def __init__(
        self,
        label: str,
        *,
        query_suffix: str = "",
        region: str = "de-de",
        category: str = "general",
        settings: Optional[SourceSettings] = None,
        timeout: Optional[float] = None,
    ):
        super().__init__(label, category=category, settings=settings, timeout=timeout)
        self.query_suffix = str(query_suffix or "").strip()
        self.region = region

    def _default_timeout(self) -> float:
        return float(self.settings.search_timeout)

    def build_query(self, topic: str) -> str:
        return " ".join(part for part in [str(topic or "").strip(), self.query_suffix] if part)

    async def _fetch_items(self, query: str, window: RecencyWindow) -> List[EvidenceItem]:
        html = await connectors._http_get_text(
            connectors.duckduckgo_search_url(query, region=self.region),
            headers=self.headers,
            timeout=self.timeout,
        )
        rows = connectors.parse_search_results(
            html,
            max_results=self.settings.max_search_results,
            summary_max_chars=self.settings.summary_max_chars,
        )
        now = datetime.now(timezone.utc)
        return [
            EvidenceItem(
                source_label=self.label,
                publisher=row["publisher"],
                title=row["title"],
                summary=row["summary"],
                url=row["url"],
                published_at=now,
                category=self.category,
                date_confidence="low",
            )
            for row in rows
        ]


_DE = {"hl": "de", "gl": "CH", "ceid": "CH:de"}
_EN = {"hl": "en-US", "gl": "US", "ceid": "US:en"}


def default_adapters(settings: Optional[SourceSettings] = None) -> List[SourceAdapter]:
    """Default source mix: main, defense, infrastructure/weather and social-signal vectors."""
    settings = settings or SourceSettings()
    return [
        FeedAdapter("MAIN_DE", settings=settings, **_DE),
        FeedAdapter("MAIN_EN", settings=settings, **_EN),
        FeedAdapter(
            "DEFENSE",
            boost_groups=[["Militär", "Marine", "Polizei", "Einsatz", "Spionage", "Russland", "Schiff", "Navy", "Military"]],
            category="security",
            settings=settings,
            **_DE,
        ),
        FeedAdapter(
            "DEFENSE_EN",
            boost_groups=[["Military", "Navy", "Police", "Spy", "Russian", "Vessel", "Incident"]],
            category="security",
            settings=settings,
            **_EN,
        ),
        FeedAdapter(
            "INFRA_WEATHER",
            boost_groups=[["Sturm", "Unwetter", "Warnung", "Stromausfall", "Überschwemmung", "Verkehr"]],
            category="weather",
            settings=settings,
            **_DE,
        ),
        SearchAdapter(
            "WEATHER_ALERT",
            query_suffix="weather warning severe storm alert",
            region="de-de",
            category="weather",
            settings=settings,
        ),
        FeedAdapter(
            "SOCIAL_SIGNAL",
            boost_groups=[
                ["site:reddit.com", "site:twitter.com", "site:x.com"],
                ["Video", "Bericht", "Breaking"],
            ],
            category="rumor",
            settings=settings,
            **_DE,
        ),
    ]
