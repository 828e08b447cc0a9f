"""
PaperLens AI Module
Handles text generation through an OpenAI-compatible chat-completions API.

Only the requests library is used for API calls; any provider that speaks
the /chat/completions protocol (OpenAI, Ollama, vLLM, LM Studio) works.
"""

from .llm_client import ChatCompletionClient

__all__ = ['ChatCompletionClient']
