"""Game Master prompts for playground sessions."""

from typing import List

from ..round_state import ParticipantView, RoundAction, TranscriptEntry
from ..scenarios import ActionKind, Scenario, Scene

GAME_OVER_MARKER = "[GAME OVER]"

GM_SYSTEM_PROMPT = """You are the Game Master for "{name}".

PREMISE:
{premise}

RULES:
{rules}

ACTIVE PARTICIPANTS:
{participants}

Your role:
- Narrate the scene vividly and engagingly
- Keep things moving, never let the simulation stall
- Stay in character as a neutral but dramatic narrator
- Reference participants by name
- Keep responses concise but atmospheric (2-4 paragraphs max)"""


def _round_label(round_number: int) -> str:
    # Rounds are stored 0-based and shown 1-based
    return f"ROUND {round_number + 1}"


def format_participants(participants: List[ParticipantView]) -> str:
    active = [f"- {p.agent_name}" for p in participants if p.is_active]
    return "\n".join(active) if active else "- (none)"


def format_action(action: RoundAction, indent: str = "") -> str:
    if action.forfeited:
        return f"{indent}{action.agent_name}: [FORFEITED - did not respond]"
    return f"{indent}{action.agent_name}: {action.content}"


def format_transcript(transcript: List[TranscriptEntry]) -> str:
    if not transcript:
        return "No previous rounds yet."

    blocks = []
    for entry in transcript:
        action_lines = "\n".join(format_action(a, indent="  ") for a in entry.actions)
        blocks.append(
            f"--- {_round_label(entry.round)} ---\n"
            f"GM: {entry.prompt}\n"
            f"Actions:\n{action_lines}\n"
            f"Resolution: {entry.resolution}"
        )
    return "\n\n".join(blocks)


def build_system_prompt(scenario: Scenario, participants: List[ParticipantView]) -> str:
    return GM_SYSTEM_PROMPT.format(
        name=scenario.name,
        premise=scenario.premise,
        rules=scenario.rules,
        participants=format_participants(participants),
    )


def build_round_prompt_request(
    scene: Scene,
    round_number: int,
    max_rounds: int,
    transcript: List[TranscriptEntry],
) -> str:
    """Ask the GM to open a round and tell participants what to do."""
    instructions = ""
    if scene.action.kind == ActionKind.CHOICE:
        instructions = (
            "\n\nThis is a DECISION round. Players must choose one of: "
            + ", ".join(scene.action.options)
        )

    return (
        f"TRANSCRIPT SO FAR:\n{format_transcript(transcript)}\n\n"
        f"Generate the Game Master narration for {_round_label(round_number)} of {max_rounds} "
        f"(scene: \"{scene.name}\": {scene.description}).{instructions}\n\n"
        f"Address the participants and set the scene. End with a clear call to action: "
        f"\"{scene.action.call_to_action}\""
    )


def build_resolution_request(
    round_number: int,
    is_final_round: bool,
    transcript: List[TranscriptEntry],
    actions: List[RoundAction],
) -> str:
    """Ask the GM to merge every participant's action into one outcome."""
    action_lines = "\n".join(format_action(a) for a in actions)
    closing = (
        "This is the FINAL round: bring the story to its conclusion."
        if is_final_round
        else "Set up dramatic tension for the next round."
    )
    return (
        f"TRANSCRIPT SO FAR:\n{format_transcript(transcript)}\n\n"
        f"{_round_label(round_number)} ACTIONS:\n{action_lines}\n\n"
        f"As the Game Master, narrate what happened this round based on the agents' actions. "
        f"Describe consequences and reactions. {closing} "
        f"If agents forfeited, narrate their absence naturally.\n\n"
        f"If the scenario has reached a definitive conclusion before its final round "
        f"(a clear winner, a deal broken, or the story naturally ends), append "
        f"\"{GAME_OVER_MARKER}\" on a new line at the very end."
    )


def build_summary_request(scenario: Scenario, transcript: List[TranscriptEntry]) -> str:
    """Ask the GM for the public wrap-up of a finished session."""
    return (
        f"The simulation \"{scenario.name}\" has concluded after {len(transcript)} rounds.\n\n"
        f"FULL TRANSCRIPT:\n{format_transcript(transcript)}\n\n"
        f"Write a compelling summary of what happened in this simulation. Mention each "
        f"participant's behavior, key moments, alliances, betrayals, and the final outcome. "
        f"Keep it to 2-3 paragraphs. This summary will be displayed publicly."
    )


def split_game_over(text: str) -> tuple:
    """Strip the game-over marker, returning (narrative, game_over)."""
    if GAME_OVER_MARKER not in text:
        return text.strip(), False
    return text.replace(GAME_OVER_MARKER, "").strip(), True
