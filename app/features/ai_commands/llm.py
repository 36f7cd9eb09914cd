"""
Language model transport.

The classifier only needs "prompt in, text out". OpenAICompatibleClient talks to
any OpenAI-compatible chat completions endpoint (Gemini, OpenRouter, OpenAI).
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
from openai import AsyncOpenAI, OpenAIError

from app.core import config
from app.utils import get_logger


log = get_logger(__name__)


class LanguageModelClient(ABC):
    @abstractmethod
    async def complete(self, prompt: str) -> str:
        """Return the model's text reply to ``prompt``."""
        raise NotImplementedError

    @abstractmethod
    def get_model_info(self) -> Dict[str, Any]:
        raise NotImplementedError

    async def close(self) -> None:
        """Release the underlying connection pool."""


class OpenAICompatibleClient(LanguageModelClient):
    def __init__(
        self,
        api_key: str,
        model: str = config.LLM_MODEL,
        base_url: Optional[str] = config.LLM_BASE_URL,
        temperature: float = config.LLM_TEMPERATURE,
        timeout: float = config.LLM_TIMEOUT_SECONDS,
        max_tokens: int = 1024,
    ):
        if not api_key or not api_key.strip():
            raise ValueError("Language model API key not set")
        self.model = model
        self.base_url = base_url
        self.temperature = temperature
        self.timeout = timeout
        self.max_tokens = max_tokens
        # A failed call falls back to the deterministic parser, so never retry
        self.client = AsyncOpenAI(
            api_key=api_key.strip(),
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )

    async def complete(self, prompt: str) -> str:
        try:
            completion = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except OpenAIError as e:
            log.warning(f"Language model API error: {e.__class__.__name__}: {e}")
            raise

        content = completion.choices[0].message.content if completion.choices else None
        return (content or "").strip()

    async def close(self) -> None:
        await self.client.close()

    def get_model_info(self) -> Dict[str, Any]:
        return {
            "provider": "openai-compatible",
            "model": self.model,
            "base_url": self.base_url,
            "temperature": self.temperature,
            "timeout": self.timeout,
        }


def build_language_model_client() -> Optional[LanguageModelClient]:
    """Client from configuration, or None when no API key is set (fallback-only mode)."""
    if not config.LLM_API_KEY:
        log.warning("No language model API key configured; commands use the fallback parser only")
        return None
    client = OpenAICompatibleClient(api_key=config.LLM_API_KEY)
    log.info(f"Language model client initialized with {client.model}")
    return client
