"""Narrator: the text-generation capability behind the Game Master."""

from typing import Optional, Protocol, Tuple, Type
from functools import lru_cache
import asyncio
import logging

import httpx

from ...config import Settings, get_settings
from ..errors import NarratorError
from .client import LLMClient

logger = logging.getLogger(__name__)


class Narrator(Protocol):
    """Single-shot text generation. Raises NarratorError on any failure."""

    async def generate(self, prompt: str, system: str = "") -> str:
        ...


class LLMNarrator:
    """Narrator backed by an LLM provider, bounded by a hard timeout."""

    def __init__(self, client: Optional[LLMClient] = None, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.client = client or LLMClient(self.settings)
        self.timeout = self.settings.narrator_timeout_seconds
        self._provider_errors = self._collect_provider_errors()

    def _collect_provider_errors(self) -> Tuple[Type[BaseException], ...]:
        errors: Tuple[Type[BaseException], ...] = (httpx.HTTPError, ValueError, KeyError)
        if self.client.provider == "anthropic":
            import anthropic
            errors = errors + (anthropic.APIError,)
        return errors

    async def generate(self, prompt: str, system: str = "") -> str:
        try:
            text = await asyncio.wait_for(
                self.client.complete(prompt, system=system),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise NarratorError(f"Narrator timed out after {self.timeout:.0f}s") from e
        except self._provider_errors as e:
            raise NarratorError(f"Narrator provider error: {e}") from e

        text = (text or "").strip()
        if not text:
            raise NarratorError("Narrator returned an empty response")
        return text

    async def close(self):
        await self.client.close()


@lru_cache()
def get_narrator() -> LLMNarrator:
    """Get cached narrator instance."""
    return LLMNarrator()
