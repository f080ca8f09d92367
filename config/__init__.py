"""
Configuration Management Module
Typed settings for sources, resolver, scoring, pipeline and LLM.
"""
from .settings import (
    Settings,
    get_settings,
    get_source_settings,
    get_resolver_settings,
    get_scoring_settings,
    get_pipeline_settings,
    get_llm_settings,
)

__all__ = [
    "Settings",
    "get_settings",
    "get_source_settings",
    "get_resolver_settings",
    "get_scoring_settings",
    "get_pipeline_settings",
    "get_llm_settings",
]
