"""LLM client supporting multiple providers (Anthropic, OpenAI-compatible)."""

from typing import Optional
import logging

import httpx

from ...config import Settings, get_settings

logger = logging.getLogger(__name__)


class LLMClient:
    """Unified async LLM client supporting multiple providers."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.provider = self.settings.llm_provider
        self.model = self.settings.llm_model
        timeout = self.settings.narrator_timeout_seconds

        if self.provider == "anthropic":
            import anthropic
            self.client = anthropic.AsyncAnthropic(
                api_key=self.settings.anthropic_api_key,
                timeout=timeout,
                max_retries=0,
            )
        else:
            # nano-gpt or other OpenAI-compatible providers
            self.api_key = self.settings.llm_api_key
            self.api_base = self.settings.llm_api_base
            self.client = httpx.AsyncClient(timeout=timeout)

    async def chat(
        self,
        messages: list[dict],
        system: str = "",
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ):
        """Send a chat message and get a response."""
        max_tokens = max_tokens or self.settings.llm_max_tokens
        if temperature is None:
            temperature = self.settings.llm_temperature

        if self.provider == "anthropic":
            return await self._anthropic_chat(messages, system, max_tokens, temperature)
        else:
            return await self._openai_compatible_chat(messages, system, max_tokens, temperature)

    async def _anthropic_chat(
        self,
        messages: list[dict],
        system: str,
        max_tokens: int,
        temperature: float,
    ):
        """Anthropic Claude API call."""
        kwargs = {
            "model": self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": messages,
        }
        if system:
            kwargs["system"] = system

        response = await self.client.messages.create(**kwargs)
        return response

    async def _openai_compatible_chat(
        self,
        messages: list[dict],
        system: str,
        max_tokens: int,
        temperature: float,
    ):
        """OpenAI-compatible API call (nano-gpt, etc.)."""
        # Prepend system message
        all_messages = []
        if system:
            all_messages.append({"role": "system", "content": system})
        all_messages.extend(messages)

        payload = {
            "model": self.model,
            "messages": all_messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }

        response = await self.client.post(
            f"{self.api_base}/chat/completions",
            json=payload,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
        )
        response.raise_for_status()
        data = response.json()
        logger.debug(f"Raw completion response: {data}")
        return OpenAIResponse(data)

    async def complete(self, prompt: str, system: str = "") -> str:
        """Single-turn completion returning the concatenated text blocks."""
        response = await self.chat(
            messages=[{"role": "user", "content": prompt}],
            system=system,
        )
        return "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )

    async def close(self):
        """Close the client."""
        if self.provider != "anthropic":
            await self.client.aclose()
        else:
            await self.client.close()


class OpenAIResponse:
    """Wrapper to make OpenAI response look like Anthropic response."""

    def __init__(self, data: dict):
        self.data = data
        self.content = [OpenAIContentBlock(data)]


class OpenAIContentBlock:
    """Wrapper for content block."""

    def __init__(self, data: dict):
        self.type = "text"
        choice = (data.get("choices") or [{}])[0]
        # Some providers answer in the legacy completions shape
        self.text = (choice.get("message") or {}).get("content") or choice.get("text") or ""
