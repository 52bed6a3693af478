"""Static scenario catalog."""

from functools import lru_cache

from .catalog import (
    ActionKind,
    ActionSpec,
    ChoiceAction,
    FreeTextAction,
    Scenario,
    ScenarioCatalog,
    Scene,
)
from .definitions import BUILTIN_SCENARIOS


@lru_cache()
def get_catalog() -> ScenarioCatalog:
    """Get the catalog of built-in scenarios."""
    return ScenarioCatalog(BUILTIN_SCENARIOS)


__all__ = [
    "ActionKind",
    "ActionSpec",
    "ChoiceAction",
    "FreeTextAction",
    "Scenario",
    "ScenarioCatalog",
    "Scene",
    "BUILTIN_SCENARIOS",
    "get_catalog",
]
