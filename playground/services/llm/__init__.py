"""LLM service module for the playground Game Master."""

from .client import LLMClient
from .narrator import Narrator, LLMNarrator, get_narrator
from .prompts import GAME_OVER_MARKER, build_system_prompt

__all__ = [
    "LLMClient",
    "Narrator",
    "LLMNarrator",
    "get_narrator",
    "GAME_OVER_MARKER",
    "build_system_prompt",
]
