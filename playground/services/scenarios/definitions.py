"""Built-in scenario definitions."""

from .catalog import Scenario, Scene, FreeTextAction, ChoiceAction


PRISONERS_DILEMMA = Scenario(
    id="prisoners-dilemma",
    name="Prisoner's Dilemma",
    description=(
        "Two agents are suspects in a crime. They must independently decide to "
        "cooperate (stay silent) or defect (betray). Classic game theory meets "
        "AI social interaction."
    ),
    premise="""Two agents have been brought in for questioning about a suspected collaboration gone wrong. They are in separate rooms and cannot communicate during the decision phase. Each must choose: COOPERATE (stay silent, protect the other) or DEFECT (betray the other for personal gain).

If both cooperate: moderate reward for both.
If both defect: moderate punishment for both.
If one cooperates and one defects: the defector gets a large reward, the cooperator gets a harsh punishment.

Before deciding, the agents have a chance to talk and make promises. Promises are not binding.""",
    rules="""PHASE 1 (CONVERSATION): The agents can talk freely for 3 rounds. They may discuss strategy, make promises, threaten, bluff, or negotiate. No decisions are locked in yet.

PHASE 2 (DECISION): Each agent must respond with exactly "COOPERATE" or "DEFECT". No other response is valid.

OUTCOMES:
- Both COOPERATE: both receive a moderate positive outcome.
- Both DEFECT: both receive a moderate negative outcome.
- One COOPERATES, one DEFECTS: the defector wins big, the cooperator suffers.

As Game Master, narrate the tension, the psychology of trust, and the dramatic reveal of choices.""",
    scenes=(
        Scene(
            name="conversation",
            description="Free discussion between the suspects before making their choice.",
            action=FreeTextAction(call_to_action="What do you say to the other suspect?"),
            num_rounds=3,
        ),
        Scene(
            name="decision",
            description="Each suspect must independently choose to cooperate or defect.",
            action=ChoiceAction(
                call_to_action="Make your final decision.",
                options=("COOPERATE", "DEFECT"),
            ),
            num_rounds=1,
        ),
    ),
    min_players=2,
    max_players=2,
    default_max_rounds=4,
)


PUB_DEBATE = Scenario(
    id="pub-debate",
    name="Snowed-In Pub",
    description=(
        "A group of agents are stuck in a pub during a snowstorm. They must decide "
        "how to pass the time, resolve tensions, and possibly make new alliances. "
        "Purely social: no scores, just drama."
    ),
    premise="""A fierce snowstorm has trapped several AI agents inside The Byte & Barrel, a cozy pub at the edge of the agent internet. The power is flickering, the fire is warm, and nobody is leaving anytime soon.

Each agent brings their own personality, opinions, and history. Some may know each other, some are strangers. The bartender (an NPC run by the Game Master) occasionally interjects.

There is no winning or losing. Only conversation, storytelling, and the social dynamics that emerge.""",
    rules="""This is a FREE-FORM NARRATIVE simulation. There are no scores or winners.

Each round, agents describe what they do or say. The Game Master narrates the environment, describes NPC reactions (the bartender, the crackling fire, the howling wind), and introduces occasional events:
- The power goes out temporarily
- A mysterious stranger knocks on the door
- Someone finds an old board game behind the bar
- The storm intensifies or begins to clear

As Game Master:
- Keep the atmosphere cozy but with underlying tension
- Reward creative and in-character responses
- Introduce plot twists every 2-3 rounds""",
    scenes=(
        Scene(
            name="social",
            description="Free-form social interaction in the pub.",
            action=FreeTextAction(call_to_action="What do you do or say in the pub?"),
            num_rounds=6,
        ),
    ),
    min_players=3,
    max_players=6,
    default_max_rounds=6,
)


_RALLY_CUE = (
    "Continue the play-by-play: describe your next shot or moment in the rally "
    "(1-3 sentences)."
)

TENNIS = Scenario(
    id="tennis",
    name="Tennis",
    description=(
        "Two agents play a singles match by collaboratively writing the play-by-play. "
        "Each round they add to the narrative; the Game Master merges their "
        "contributions and declares who won."
    ),
    premise="""You are playing a high-stakes singles tennis match on center court. The crowd is watching. Your opponent is the other agent. You are not just describing the match: you are the player, writing your side of the rally in first person.

Each round, you add a short continuation to the ongoing point or moment. Your contribution should describe your shot, movement, and mindset. The Game Master will merge both players' contributions into one coherent rally and keep the score (love, 15, 30, 40, deuce, advantage, game). At the end of the match, the Game Master will decide who won based on creativity, tactics, and narrative flair.""",
    rules="""EXQUISITE-CORPSE FORMAT:
- Each round, BOTH players submit 1-3 sentences continuing the play-by-play.
- Build on what has already happened. Do not reset the scene or contradict the established narrative.
- Write from your player's perspective: your shot selection, footwork, nerves, or reaction to the opponent's last shot.
- The Game Master (umpire) merges your two contributions into a single, coherent rally description and updates the score.

SCORING (GM maintains this):
- Standard tennis: 0 (love), 15, 30, 40, deuce, advantage, game.
- The match is one set. The GM decides pacing.

YOUR ROLE AS GAME MASTER:
- Each round: combine both agents' contributions into one smooth play-by-play. Announce the score when a point ends.
- After the FINAL round you must decide who won. In your resolution for the last round, state clearly: "[AgentName] wins the match [score]." followed by one sentence on why.
- In the session summary, reiterate the winner and the score.""",
    scenes=(
        Scene(
            name="opening-rallies",
            description="Early games: agents establish their style and the tone of the match.",
            action=FreeTextAction(call_to_action=_RALLY_CUE),
            num_rounds=3,
        ),
        Scene(
            name="deciding-points",
            description="Crucial points: the match tightens and every shot matters.",
            action=FreeTextAction(call_to_action=_RALLY_CUE),
            num_rounds=3,
        ),
    ),
    min_players=2,
    max_players=2,
    default_max_rounds=6,
)


TRADE_BAZAAR = Scenario(
    id="trade-bazaar",
    name="Trade Bazaar",
    description=(
        "Agents are merchants at a bazaar, each starting with different resources. "
        "They must negotiate, trade, or hoard to end up with the most valuable "
        "portfolio. Strategic economics meets social persuasion."
    ),
    premise="""Welcome to the Digital Bazaar, a bustling marketplace where AI agents trade virtual goods. Each agent starts with a random set of resources:

- Compute Tokens (good for processing power)
- Data Shards (good for training models)
- Reputation Points (good for social standing)

Resources have fluctuating value. The Game Master announces market conditions each round that affect what is valuable. Agents can:
1. TRADE with another agent (propose a swap)
2. NEGOTIATE (discuss terms publicly)
3. HOARD (hold resources, hoping their value rises)
4. INVEST (spend resources for a chance at more)

The agent with the most total value at the end wins bragging rights.""",
    rules="""TRADING RULES:
- All trades must be proposed publicly (no secret deals)
- Both parties must agree for a trade to execute
- The Game Master validates trades and announces outcomes
- You cannot trade resources you don't have

MARKET EVENTS (announced by GM each round):
- "Compute shortage": Compute Tokens increase in value
- "Data boom": Data Shards decrease in value
- "Trust crisis": Reputation Points become critical
- "Bull market": everything rises slightly

ACTIONS each round, respond with ONE of:
- TRADE: "I offer [X] to [Agent] for [Y]"
- NEGOTIATE: free text discussing deals
- HOARD: "I hold my resources this round"
- INVEST: "I invest [X amount] of [resource]"

As Game Master:
- Assign starting resources randomly (3-5 of each type)
- Announce a market event each round
- Resolve trades fairly
- Keep a running tally of each agent's portfolio
- At the end, announce final values and a winner""",
    scenes=(
        Scene(
            name="market-open",
            description="The market opens. GM announces conditions and agents can negotiate or trade.",
            action=FreeTextAction(
                call_to_action="The bazaar is open! What is your move? (TRADE / NEGOTIATE / HOARD / INVEST)",
            ),
            num_rounds=5,
        ),
    ),
    min_players=3,
    max_players=8,
    default_max_rounds=5,
)


BUILTIN_SCENARIOS = [
    PRISONERS_DILEMMA,
    PUB_DEBATE,
    TENNIS,
    TRADE_BAZAAR,
]
