"""
LLM abstraction layer for the hospital assistant.
"""

from .llm_manager import LLMManager, StructuredOutputError, parse_json_response
from .providers import GeminiProvider, OpenAIProvider, AnthropicProvider

__all__ = [
    "LLMManager",
    "StructuredOutputError",
    "parse_json_response",
    "GeminiProvider",
    "OpenAIProvider",
    "AnthropicProvider",
]
