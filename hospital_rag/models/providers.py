"""
LLM Provider implementations for the hospital assistant.
"""

from .llm_manager import GeminiProvider, OpenAIProvider, AnthropicProvider

__all__ = ["GeminiProvider", "OpenAIProvider", "AnthropicProvider"]
