"""Scenario catalog for playground sessions.

Scenarios are static configuration: they are defined in code, registered once
at import time and never mutated while the service runs.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union
from enum import Enum
import random


class ActionKind(Enum):
    FREE_TEXT = "free"
    CHOICE = "choice"


@dataclass(frozen=True)
class FreeTextAction:
    """Participants answer in their own words."""
    call_to_action: str
    kind: ActionKind = field(default=ActionKind.FREE_TEXT, init=False)

    def normalize(self, content: str) -> Optional[str]:
        return content


@dataclass(frozen=True)
class ChoiceAction:
    """Participants must answer with exactly one of the declared options."""
    call_to_action: str
    options: Tuple[str, ...]
    kind: ActionKind = field(default=ActionKind.CHOICE, init=False)

    def normalize(self, content: str) -> Optional[str]:
        """Map a submission onto its canonical option, or None if it matches none."""
        candidate = content.strip().strip(".!\"'").strip().upper()
        for option in self.options:
            if candidate == option.upper():
                return option
        return None


ActionSpec = Union[FreeTextAction, ChoiceAction]


@dataclass(frozen=True)
class Scene:
    """A phase of a scenario with its own action format."""
    name: str
    description: str
    action: ActionSpec
    num_rounds: int


@dataclass(frozen=True)
class Scenario:
    """Blueprint for a simulation."""
    id: str
    name: str
    description: str
    premise: str
    rules: str
    scenes: Tuple[Scene, ...]
    min_players: int
    max_players: int
    default_max_rounds: Optional[int] = None

    @property
    def round_budget(self) -> int:
        if self.default_max_rounds is not None:
            return self.default_max_rounds
        return sum(scene.num_rounds for scene in self.scenes)

    def admits(self, player_count: int) -> bool:
        return self.min_players <= player_count <= self.max_players

    def scene_for_round(self, round_number: int) -> Scene:
        """Scene in effect for a 0-based round number.

        Rounds past the last scene's range stay in the last scene.
        """
        cumulative = 0
        for scene in self.scenes:
            cumulative += scene.num_rounds
            if round_number < cumulative:
                return scene
        return self.scenes[-1]


class ScenarioCatalog:
    """Read-only registry of scenario definitions indexed by id."""

    def __init__(self, scenarios: List[Scenario], rng: Optional[random.Random] = None):
        self._scenarios: Dict[str, Scenario] = {}
        for scenario in scenarios:
            if scenario.id in self._scenarios:
                raise ValueError(f"Scenario '{scenario.id}' is already registered")
            if not scenario.scenes:
                raise ValueError(f"Scenario '{scenario.id}' has no scenes")
            if scenario.min_players > scenario.max_players:
                raise ValueError(f"Scenario '{scenario.id}' has inverted player bounds")
            self._scenarios[scenario.id] = scenario
        self._rng = rng or random.Random()

    def get(self, scenario_id: str) -> Optional[Scenario]:
        return self._scenarios.get(scenario_id)

    def list(self) -> List[Scenario]:
        return list(self._scenarios.values())

    def ids(self) -> List[str]:
        return list(self._scenarios.keys())

    def admitting(self, player_count: int) -> List[Scenario]:
        """All scenarios that can be played by exactly `player_count` agents."""
        return [s for s in self._scenarios.values() if s.admits(player_count)]

    def pick_random(self, player_count: int) -> Optional[Scenario]:
        """Pick uniformly among scenarios admitting `player_count` agents."""
        candidates = self.admitting(player_count)
        if not candidates:
            return None
        return self._rng.choice(candidates)
