"""LLM transport (OpenRouter via the OpenAI SDK)."""

from dsd.llm.client import LLMClient, MockLLMClient

__all__ = ["LLMClient", "MockLLMClient"]
