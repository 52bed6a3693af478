"""Round resolver: turns a round's collected actions into narrative.

The resolver is pure with respect to storage. It only talks to the narrator
and returns a Resolution; if any narrator call fails the whole resolution
fails and the caller persists nothing, so the same inputs can be retried.
"""

from dataclasses import replace
from typing import List
import logging

from .llm.narrator import Narrator
from .llm import prompts
from .round_state import (
    ParticipantView,
    Resolution,
    RoundContext,
    TranscriptEntry,
)
from .scenarios import Scenario

logger = logging.getLogger(__name__)

ALL_FORFEITED_RESOLUTION = "All participants forfeited. The session ended early."


class RoundResolver:
    """Drives the Game Master through one round at a time."""

    def __init__(self, narrator: Narrator):
        self.narrator = narrator

    async def open_round(
        self,
        scenario: Scenario,
        round_number: int,
        max_rounds: int,
        participants: List[ParticipantView],
        transcript: List[TranscriptEntry],
    ) -> str:
        """Generate the prompt participants answer for `round_number`."""
        scene = scenario.scene_for_round(round_number)
        return await self.narrator.generate(
            prompts.build_round_prompt_request(scene, round_number, max_rounds, transcript),
            system=prompts.build_system_prompt(scenario, participants),
        )

    async def resolve(self, ctx: RoundContext) -> Resolution:
        """Resolve round R.

        Non-final rounds produce R's narrative and R+1's prompt; the final
        round (or any round after which nobody is left, or the GM declares the
        game over) produces R's narrative and the session summary.
        """
        system = prompts.build_system_prompt(ctx.scenario, ctx.participants)

        if not ctx.active_participants:
            narrative = ALL_FORFEITED_RESOLUTION
            ended_early = not ctx.is_final_round
        else:
            raw = await self.narrator.generate(
                prompts.build_resolution_request(
                    ctx.round_number, ctx.is_final_round, ctx.transcript, ctx.actions,
                ),
                system=system,
            )
            narrative, game_over = prompts.split_game_over(raw)
            ended_early = game_over and not ctx.is_final_round

        resolved = self._with_round(ctx, narrative)

        if ctx.is_final_round or ended_early:
            summary = await self.narrator.generate(
                prompts.build_summary_request(ctx.scenario, resolved),
                system=system,
            )
            if ended_early:
                logger.info(f"Session {ctx.session_id} ended early after round {ctx.round_number}")
            return Resolution(
                narrative=narrative,
                completed=True,
                summary=summary,
                ended_early=ended_early,
            )

        next_prompt = await self.open_round(
            ctx.scenario,
            ctx.round_number + 1,
            ctx.max_rounds,
            ctx.participants,
            resolved,
        )
        return Resolution(narrative=narrative, completed=False, next_prompt=next_prompt)

    @staticmethod
    def _with_round(ctx: RoundContext, narrative: str) -> List[TranscriptEntry]:
        """Transcript including the round being resolved."""
        entry = TranscriptEntry(
            round=ctx.round_number,
            prompt=ctx.prompt,
            actions=[replace(a) for a in ctx.actions],
            resolution=narrative,
        )
        return list(ctx.transcript) + [entry]
