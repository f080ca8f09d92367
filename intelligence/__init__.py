"""
Intelligence Module
LLM abstraction used for report synthesis.
"""
from .llm import (
    BaseLLM,
    OpenAILLM,
    AnthropicLLM,
    get_llm,
)

__all__ = [
    "BaseLLM",
    "OpenAILLM",
    "AnthropicLLM",
    "get_llm",
]
