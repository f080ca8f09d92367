"""Source adapters for evidence ingestion."""

from .adapters import FeedAdapter, SearchAdapter, SourceAdapter, default_adapters

__all__ = [
    "FeedAdapter",
    "SearchAdapter",
    "SourceAdapter",
    "default_adapters",
]
