"""
Settings Configuration
Pydantic-based settings for sources, link resolution, scoring and the summarizer.
"""
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class SourceSettings(BaseSettings):
    """Source adapter settings"""
    feed_timeout: float = Field(default=6.0, description="Feed request timeout (s)")
    search_timeout: float = Field(default=6.0, description="Search page request timeout (s)")
    max_items_per_source: int = Field(default=20, description="Max items kept per adapter")
    max_search_results: int = Field(default=9, description="Max parsed search result rows")
    summary_max_chars: int = Field(default=300, description="Summary truncation length")
    user_agent: str = Field(default="Mozilla/5.0 (compatible; IntelBot/6.0)", description="HTTP User-Agent")
    blacklist_domains: List[str] = Field(
        default_factory=lambda: ["tripadvisor", "booking", "pinterest", "ebay", "temu", "tiktok.com/video"],
        description="Low-value domains dropped before returning items",
    )

    class Config:
        env_prefix = "SOURCE_"


class ResolverSettings(BaseSettings):
    """Link resolver settings"""
    timeout: float = Field(default=3.0, description="HEAD request timeout (s)")
    max_hops: int = Field(default=3, description="Max redirects followed")
    aggregator_patterns: List[str] = Field(
        default_factory=lambda: ["news.google.com", "google.com/url", "r.search.yahoo", "duckduckgo.com/l/"],
        description="URL fragments that mark redirect indirection",
    )

    class Config:
        env_prefix = "RESOLVER_"


class ScoringSettings(BaseSettings):
    """Relevance scoring settings"""
    security_keywords: List[str] = Field(
        default_factory=lambda: [
            "attack", "angriff", "military", "militär", "ship", "schiff", "marine", "navy",
            "police", "polizei", "alert", "warnung", "storm", "sturm", "cyber", "outage", "ausfall",
        ],
        description="Security/crisis lexicon",
    )
    priority_domains: List[str] = Field(
        default_factory=lambda: [
            "reuters", "apnews", "bbc", "cnn", "aljazeera",
            "ukdefencejournal", "navalnews", "janes",
            "meteoalarm", "wetter", "weather",
            "polizei", "police", ".mil", ".gov",
        ],
        description="Trusted/priority publisher fragments",
    )
    keyword_bonus: int = Field(default=10, description="Bonus for a security keyword hit")
    domain_bonus: int = Field(default=5, description="Bonus for a priority domain hit")
    freshness_bonus: int = Field(default=3, description="Bonus for very fresh items")
    freshness_hours: float = Field(default=4.0, description="Freshness window (h)")
    recent_bonus: int = Field(default=1, description="Bonus for items inside the recent window")
    recent_hours: float = Field(default=24.0, description="Recent window (h)")
    near_duplicate_threshold: float = Field(default=0.85, description="Title Jaccard threshold")
    near_duplicate_enabled: bool = Field(default=True, description="Collapse near-identical headlines")

    class Config:
        env_prefix = "SCORING_"


class PipelineSettings(BaseSettings):
    """Job pipeline settings"""
    evidence_cap: int = Field(default=50, description="Max evidence items passed to synthesis")
    adapter_timeout: float = Field(default=25.0, description="Outer safety timeout per adapter (s)")
    final_write_attempts: int = Field(default=3, description="Attempts for terminal status writes")
    final_write_backoff: float = Field(default=0.5, description="Backoff multiplier for terminal writes (s)")
    report_language: str = Field(default="English", description="Report language")
    log_level: str = Field(default="INFO", description="Root log level for the CLI and web app")
    log_file: Optional[str] = Field(default=None, description="Optional log file name under logs/")

    class Config:
        env_prefix = "PIPELINE_"


class LLMSettings(BaseSettings):
    """Summarizer LLM settings"""
    provider: str = Field(default="anthropic", description="LLM provider: anthropic, openai")
    model_name: Optional[str] = Field(default=None, description="Model name (provider default when empty)")
    temperature: float = Field(default=0.3, description="Sampling temperature")
    max_tokens: int = Field(default=4096, description="Report output ceiling")
    timeout: float = Field(default=120.0, description="Summarizer timeout (s)")

    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API Key")
    anthropic_api_key: Optional[str] = Field(default=None, description="Anthropic API Key")

    class Config:
        env_prefix = "LLM_"


class Settings(BaseSettings):
    """Top-level settings aggregating all sub-configs"""

    sources: SourceSettings = Field(default_factory=SourceSettings)
    resolver: ResolverSettings = Field(default_factory=ResolverSettings)
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @classmethod
    def load_from_env_file(cls, env_path: Optional[Path] = None) -> "Settings":
        """Load settings after applying an optional .env file (defaults to config/.env)."""
        if env_path is None:
            env_path = Path(__file__).parent / ".env"

        if env_path.exists():
            from dotenv import load_dotenv
            load_dotenv(env_path)

        return cls(
            sources=SourceSettings(),
            resolver=ResolverSettings(),
            scoring=ScoringSettings(),
            pipeline=PipelineSettings(),
            llm=LLMSettings(),
        )


@lru_cache()
def get_settings() -> Settings:
    """Cached settings singleton"""
    return Settings.load_from_env_file()


def get_source_settings() -> SourceSettings:
    return get_settings().sources


def get_resolver_settings() -> ResolverSettings:
    return get_settings().resolver


def get_scoring_settings() -> ScoringSettings:
    return get_settings().scoring


def get_pipeline_settings() -> PipelineSettings:
    return get_settings().pipeline


def get_llm_settings() -> LLMSettings:
    return get_settings().llm
