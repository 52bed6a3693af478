"""Tests for session_manager.py: round advancement, the deadline sweep and matchmaking."""

import asyncio
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from sqlalchemy import update

from support import (
    FakeNarrator, add_agents, build_env, load_participants, load_session,
    load_transcript, start_session,
)

from playground.models import PlaygroundSession
from playground.services.errors import (
    AgentNotEligible, AgentNotFound, AlreadyJoined, NotEnoughAgents,
    ScenarioNotFound, SessionFull, SessionNotPending,
)
from playground.services.round_resolver import ALL_FORFEITED_RESOLUTION
from playground.services.session_manager import AdvanceOutcome


class TestSessionStart:
    """Tests for forming and starting sessions."""

    def test_start_opens_round_zero(self, tmp_path):
        """Test starting opens round 0 with a prompt and deadline."""
        async def run():
            env = await build_env(tmp_path)
            session_id = await start_session(env, "prisoners-dilemma", "alice", "bob")
            session = await load_session(env, session_id)
            participants = await load_participants(env, session_id)
            await env.close()
            return env, session, participants

        env, session, participants = asyncio.run(run())
        assert session.status == "active"
        assert session.current_round == 0
        assert session.max_rounds == 4
        assert session.current_round_prompt == "The Game Master narrates #1."
        assert session.round_deadline == env.clock() + env.manager.round_timeout
        assert session.started_at == env.clock()
        assert session.claim_token is None
        assert sorted(p.agent_name for p in participants) == ["Alice", "Bob"]
        assert "ROUND 1 of 4" in env.narrator.calls[0][0]

    def test_narrator_failure_leaves_session_pending(self, tmp_path):
        """Test a failed start stays pending and retries."""
        async def run():
            narrator = FakeNarrator()
            narrator.fail_always = True
            env = await build_env(tmp_path, narrator=narrator)
            session_id = await start_session(env, "tennis", "alice", "bob")
            pending = await load_session(env, session_id)

            narrator.fail_always = False
            report = await env.manager.run_matchmaking()
            started = await load_session(env, session_id)
            await env.close()
            return session_id, pending, report, started

        session_id, pending, report, started = asyncio.run(run())
        assert pending.status == "pending"
        assert pending.claim_token is None
        assert report.started == [session_id]
        assert started.status == "active"

    def test_unknown_scenario(self, tmp_path):
        """Test creating a session of an unknown scenario."""
        async def run():
            env = await build_env(tmp_path)
            await add_agents(env, "alice", "bob")
            try:
                await env.manager.create_session(scenario_id="chess")
            finally:
                await env.close()

        with pytest.raises(ScenarioNotFound):
            asyncio.run(run())


class TestRoundAdvancement:
    """Tests for advancing rounds through action submission."""

    def test_round_advances_when_everyone_acts(self, tmp_path):
        """Test the last submission advances the round."""
        async def run():
            env = await build_env(tmp_path)
            session_id = await start_session(env, "prisoners-dilemma", "alice", "bob")
            first = await env.intake.submit_action(session_id, "alice", "I will stay silent.")
            second = await env.intake.submit_action(session_id, "bob", "So will I.")
            session = await load_session(env, session_id)
            transcript = await load_transcript(env, session_id)
            await env.close()
            return first, second, session, transcript

        first, second, session, transcript = asyncio.run(run())
        assert not first.advanced
        assert first.current_round == 0
        assert second.advanced
        assert second.current_round == 1
        assert session.current_round == 1
        assert session.current_round_prompt == "The Game Master narrates #3."
        assert len(transcript) == 1
        entry = transcript[0]
        assert entry.round == 0
        assert entry.resolution == "The Game Master narrates #2."
        assert {a["agent_id"]: a["content"] for a in entry.actions} == {
            "alice": "I will stay silent.",
            "bob": "So will I.",
        }

    def test_full_game_completes_with_summary(self, tmp_path):
        """Test a full game ends with a summary."""
        async def run():
            env = await build_env(tmp_path)
            session_id = await start_session(env, "prisoners-dilemma", "alice", "bob")
            for _ in range(3):
                await env.intake.submit_action(session_id, "alice", "Trust me.")
                await env.intake.submit_action(session_id, "bob", "Maybe.")
            await env.intake.submit_action(session_id, "alice", "cooperate")
            last = await env.intake.submit_action(session_id, "bob", "Defect!")
            session = await load_session(env, session_id)
            transcript = await load_transcript(env, session_id)
            await env.close()
            return env, last, session, transcript

        env, last, session, transcript = asyncio.run(run())
        assert last.advanced
        assert last.status == "completed"
        assert session.status == "completed"
        assert session.current_round == 4
        assert session.round_deadline is None
        assert session.completed_at is not None
        assert session.summary == "The Game Master narrates #9."
        assert [t.round for t in transcript] == [0, 1, 2, 3]
        decisions = {a["agent_id"]: a["content"] for a in transcript[3].actions}
        assert decisions == {"alice": "COOPERATE", "bob": "DEFECT"}
        assert len(env.narrator.calls) == 9

    def test_not_ready_before_deadline(self, tmp_path):
        """Test partial rounds and stale rounds do not advance."""
        async def run():
            env = await build_env(tmp_path)
            session_id = await start_session(env, "tennis", "alice", "bob")
            await env.intake.submit_action(session_id, "alice", "Big serve.")
            result = await env.manager.advance_round(session_id)
            stale = await env.manager.advance_round(session_id, observed_round=5)
            await env.close()
            return result, stale

        result, stale = asyncio.run(run())
        assert result.outcome == AdvanceOutcome.NOT_READY
        assert stale.outcome == AdvanceOutcome.STALE

    def test_concurrent_submissions_advance_once(self, tmp_path):
        """Test simultaneous final submissions resolve once."""
        async def run():
            env = await build_env(tmp_path, narrator=FakeNarrator(delay=0.05))
            session_id = await start_session(env, "tennis", "alice", "bob")
            results = await asyncio.gather(
                env.intake.submit_action(session_id, "alice", "Forehand."),
                env.intake.submit_action(session_id, "bob", "Backhand."),
            )
            session = await load_session(env, session_id)
            transcript = await load_transcript(env, session_id)
            await env.close()
            return results, session, transcript

        results, session, transcript = asyncio.run(run())
        assert sum(1 for r in results if r.advanced) == 1
        assert session.current_round == 1
        assert len(transcript) == 1

    def test_concurrent_advance_calls_resolve_once(self, tmp_path):
        """Test racing advance calls resolve once."""
        async def run():
            env = await build_env(tmp_path, narrator=FakeNarrator(delay=0.05))
            session_id = await start_session(env, "tennis", "alice", "bob")
            await env.intake.submit_action(session_id, "alice", "Lob.")
            # Bob never acts; the deadline passes
            env.clock.advance(seconds=601)
            results = await asyncio.gather(*[
                env.manager.advance_round(session_id, observed_round=0) for _ in range(4)
            ])
            transcript = await load_transcript(env, session_id)
            calls = len(env.narrator.calls)
            await env.close()
            return results, transcript, calls

        results, transcript, calls = asyncio.run(run())
        assert sum(1 for r in results if r.changed_round) == 1
        assert len(transcript) == 1
        # Opening prompt, one resolution, one next prompt
        assert calls == 3


class TestNarratorFailure:
    """Tests for recovery after the narrator fails mid-resolution."""

    def test_failed_resolution_is_retried(self, tmp_path):
        """Test a failed resolution is retried later."""
        async def run():
            env = await build_env(tmp_path)
            session_id = await start_session(env, "tennis", "alice", "bob")
            await env.intake.submit_action(session_id, "alice", "Drop shot.")
            env.narrator.fail_next = 1
            failed = await env.intake.submit_action(session_id, "bob", "Chase it down.")
            after_failure = await load_session(env, session_id)
            transcript_after_failure = await load_transcript(env, session_id)

            env.clock.advance(seconds=601)
            report = await env.manager.sweep_deadlines()
            recovered = await load_session(env, session_id)
            transcript = await load_transcript(env, session_id)
            await env.close()
            return failed, after_failure, transcript_after_failure, report, recovered, transcript

        failed, after_failure, transcript_after_failure, report, recovered, transcript = asyncio.run(run())
        assert not failed.advanced
        assert failed.current_round == 0
        assert after_failure.claim_token is None
        assert transcript_after_failure == []

        assert report.advanced == 1
        assert recovered.current_round == 1
        assert len(transcript) == 1
        # Nobody forfeits: both actions were recorded before the failure
        assert all(not a["forfeited"] for a in transcript[0].actions)

    def test_failure_on_next_prompt_persists_nothing(self, tmp_path):
        """Test a partial narrator failure writes nothing."""
        async def run():
            env = await build_env(tmp_path)
            session_id = await start_session(env, "tennis", "alice", "bob")
            await env.intake.submit_action(session_id, "alice", "Serve.")
            # Call 2 is the resolution, call 3 the next round's prompt
            env.narrator.fail_calls = {3}
            await env.intake.submit_action(session_id, "bob", "Return.")
            session = await load_session(env, session_id)
            transcript = await load_transcript(env, session_id)
            await env.close()
            return session, transcript

        session, transcript = asyncio.run(run())
        assert session.current_round == 0
        assert session.claim_token is None
        assert transcript == []


class TestClaims:
    """Tests for the resolution claim and its lease."""

    def test_expired_claim_is_reclaimed_by_sweep(self, tmp_path):
        """Test the sweep takes over a crashed resolver's round."""
        async def run():
            env = await build_env(tmp_path)
            session_id = await start_session(env, "tennis", "alice", "bob")
            await env.intake.submit_action(session_id, "alice", "Ace.")
            env.narrator.fail_next = 1
            await env.intake.submit_action(session_id, "bob", "Return.")

            # Round 0 is ready; simulate a resolver that crashed holding it
            async with env.session_factory() as db:
                await db.execute(
                    update(PlaygroundSession)
                    .where(PlaygroundSession.id == session_id)
                    .values(claim_token="crashed", claim_expires_at=env.clock() + env.manager.claim_lease)
                )
                await db.commit()

            held = await env.manager.advance_round(session_id)
            env.clock.advance(seconds=env.settings.claim_lease_seconds + 1)
            report = await env.manager.sweep_deadlines()
            session = await load_session(env, session_id)
            await env.close()
            return held, report, session

        held, report, session = asyncio.run(run())
        assert held.outcome == AdvanceOutcome.CLAIM_LOST
        assert report.checked == 1
        assert report.advanced == 1
        assert session.current_round == 1
        assert session.claim_token is None

    def test_finalize_refused_after_claim_taken_over(self, tmp_path):
        """Test a resolver that lost its claim cannot finalize."""
        async def run():
            env = await build_env(tmp_path)
            session_id = await start_session(env, "tennis", "alice", "bob")

            class TakeoverNarrator(FakeNarrator):
                async def generate(self, prompt, system=""):
                    text = await super().generate(prompt, system)
                    async with env.session_factory() as db:
                        await db.execute(
                            update(PlaygroundSession)
                            .where(PlaygroundSession.id == session_id)
                            .values(claim_token="someone-else")
                        )
                        await db.commit()
                    return text

            env.manager.resolver.narrator = TakeoverNarrator()
            await env.intake.submit_action(session_id, "alice", "Slice.")
            result = await env.intake.submit_action(session_id, "bob", "Volley.")
            session = await load_session(env, session_id)
            transcript = await load_transcript(env, session_id)
            await env.close()
            return result, session, transcript

        result, session, transcript = asyncio.run(run())
        assert not result.advanced
        assert session.current_round == 0
        assert session.claim_token == "someone-else"
        assert transcript == []

    def test_lapsed_claim_on_unready_round_is_cleared(self, tmp_path):
        """Test an expired claim is dropped once, not re-swept every tick."""
        async def run():
            env = await build_env(tmp_path)
            session_id = await start_session(env, "tennis", "alice", "bob")
            await env.intake.submit_action(session_id, "alice", "Ace.")
            async with env.session_factory() as db:
                await db.execute(
                    update(PlaygroundSession)
                    .where(PlaygroundSession.id == session_id)
                    .values(claim_token="crashed", claim_expires_at=env.clock() + env.manager.claim_lease)
                )
                await db.commit()

            # Lease lapses well before the round deadline
            env.clock.advance(seconds=env.settings.claim_lease_seconds + 1)
            first = await env.manager.sweep_deadlines()
            second = await env.manager.sweep_deadlines()
            session = await load_session(env, session_id)
            await env.close()
            return first, second, session

        first, second, session = asyncio.run(run())
        assert first.checked == 1
        assert first.advanced == 0
        assert second.checked == 0
        assert session.claim_token is None
        assert session.claim_expires_at is None
        assert session.current_round == 0


class TestDeadlineSweep:
    """Tests for deadline-driven advancement and forfeits."""

    def test_missing_participant_forfeits(self, tmp_path):
        """Test a silent participant forfeits at the deadline."""
        async def run():
            env = await build_env(tmp_path)
            session_id = await start_session(env, "trade-bazaar", "alice", "bob", "carol")
            await env.intake.submit_action(session_id, "alice", "I sell silk.")
            await env.intake.submit_action(session_id, "bob", "I buy silk.")
            env.clock.advance(seconds=601)
            report = await env.manager.sweep_deadlines()
            session = await load_session(env, session_id)
            participants = {p.agent_id: p for p in await load_participants(env, session_id)}
            transcript = await load_transcript(env, session_id)

            # Remaining two are enough to close round 1 without waiting
            await env.intake.submit_action(session_id, "alice", "Counter offer.")
            result = await env.intake.submit_action(session_id, "bob", "Accepted.")
            transcript_after = await load_transcript(env, session_id)
            await env.close()
            return report, session, participants, transcript, result, transcript_after

        report, session, participants, transcript, result, transcript_after = asyncio.run(run())
        assert report.advanced == 1
        assert session.current_round == 1
        assert participants["carol"].status == "forfeited"
        assert participants["carol"].forfeited_at_round == 0
        assert participants["alice"].status == "active"

        carol_entry = [a for a in transcript[0].actions if a["agent_id"] == "carol"][0]
        assert carol_entry["forfeited"]
        assert carol_entry["content"] == ""

        assert result.advanced
        later = [a for a in transcript_after[1].actions if a["agent_id"] == "carol"][0]
        assert later["forfeited"]

    def test_everyone_forfeits_ends_session(self, tmp_path):
        """Test the session ends when everyone forfeits."""
        async def run():
            env = await build_env(tmp_path)
            session_id = await start_session(env, "prisoners-dilemma", "alice", "bob")
            env.clock.advance(seconds=601)
            reports = await asyncio.gather(
                env.manager.sweep_deadlines(),
                env.manager.sweep_deadlines(),
            )
            session = await load_session(env, session_id)
            transcript = await load_transcript(env, session_id)
            participants = await load_participants(env, session_id)
            await env.close()
            return env, reports, session, transcript, participants

        env, reports, session, transcript, participants = asyncio.run(run())
        assert sum(r.completed for r in reports) == 1
        assert session.status == "completed"
        assert session.current_round == 1
        assert session.summary == "The Game Master narrates #2."
        assert len(transcript) == 1
        assert transcript[0].resolution == ALL_FORFEITED_RESOLUTION
        assert all(p.status == "forfeited" for p in participants)
        # Opening prompt and summary only
        assert len(env.narrator.calls) == 2

    def test_final_round_forfeit_completes_once(self, tmp_path):
        """Test a forfeit in the final round completes once."""
        async def run():
            env = await build_env(tmp_path)
            session_id = await start_session(env, "prisoners-dilemma", "alice", "bob")
            for _ in range(3):
                await env.intake.submit_action(session_id, "alice", "Let's both stay quiet.")
                await env.intake.submit_action(session_id, "bob", "Agreed.")
            await env.intake.submit_action(session_id, "alice", "COOPERATE")
            env.clock.advance(seconds=601)
            first = await env.manager.sweep_deadlines()
            second = await env.manager.sweep_deadlines()
            session = await load_session(env, session_id)
            transcript = await load_transcript(env, session_id)
            participants = {p.agent_id: p for p in await load_participants(env, session_id)}
            await env.close()
            return env, first, second, session, transcript, participants

        env, first, second, session, transcript, participants = asyncio.run(run())
        assert first.completed == 1
        assert second.checked == 0
        assert session.status == "completed"
        assert session.summary == "The Game Master narrates #9."
        assert [t.round for t in transcript] == [0, 1, 2, 3]
        final = {a["agent_id"]: a for a in transcript[3].actions}
        assert final["alice"]["content"] == "COOPERATE"
        assert final["bob"]["forfeited"]
        assert participants["bob"].forfeited_at_round == 3
        assert len(env.narrator.calls) == 9

    def test_sweep_ignores_sessions_before_deadline(self, tmp_path):
        """Test the sweep skips rounds still open."""
        async def run():
            env = await build_env(tmp_path)
            await start_session(env, "tennis", "alice", "bob")
            env.clock.advance(seconds=599)
            report = await env.manager.sweep_deadlines()
            await env.close()
            return report

        report = asyncio.run(run())
        assert report.checked == 0

    def test_late_action_before_sweep_is_accepted(self, tmp_path):
        """Test a late action is accepted before the sweep."""
        async def run():
            env = await build_env(tmp_path)
            session_id = await start_session(env, "tennis", "alice", "bob")
            env.clock.advance(seconds=700)
            result = await env.intake.submit_action(session_id, "alice", "Late serve.")
            participants = {p.agent_id: p for p in await load_participants(env, session_id)}
            await env.close()
            return result, participants

        result, participants = asyncio.run(run())
        # The late action is recorded and, the deadline being past, closes the round
        assert result.advanced
        assert result.current_round == 1
        assert participants["alice"].status == "active"
        assert participants["bob"].status == "forfeited"


class TestMatchmaking:
    """Tests for grouping idle agents into sessions."""

    def test_auto_pick_uses_largest_group(self, tmp_path):
        """Test auto-pick groups as many agents as fit."""
        async def run():
            env = await build_env(tmp_path)
            await add_agents(env, "alice", "bob", "carol")
            session_id = await env.manager.create_session()
            session = await load_session(env, session_id)
            participants = await load_participants(env, session_id)
            await env.close()
            return session, participants

        session, participants = asyncio.run(run())
        assert session.scenario_id in ("pub-debate", "trade-bazaar")
        assert len(participants) == 3
        assert session.status == "active"

    def test_inactive_agents_are_not_matched(self, tmp_path):
        """Test inactive agents are left out."""
        async def run():
            env = await build_env(tmp_path)
            await add_agents(env, "alice", "bob", active_days_ago=10)
            try:
                await env.manager.create_session()
            finally:
                await env.close()

        with pytest.raises(NotEnoughAgents):
            asyncio.run(run())

    def test_busy_agents_are_not_matched(self, tmp_path):
        """Test agents in open sessions are left out."""
        async def run():
            env = await build_env(tmp_path)
            await start_session(env, "tennis", "alice", "bob")
            try:
                await env.manager.create_session(scenario_id="tennis")
            finally:
                await env.close()

        with pytest.raises(NotEnoughAgents):
            asyncio.run(run())

    def test_auto_form_fills_groups_until_agents_run_out(self, tmp_path):
        """Test auto-forming keeps grouping idle agents."""
        async def run():
            env = await build_env(tmp_path, matchmaking_auto_form=True)
            await add_agents(env, "a1", "a2", "a3", "a4", "a5")
            report = await env.manager.run_matchmaking()
            idle = await env.manager.idle_agents()
            await env.close()
            return report, idle

        report, idle = asyncio.run(run())
        assert len(report.created) == 1
        assert idle == []

    def test_stale_pending_session_is_cancelled(self, tmp_path):
        """Test pending sessions time out."""
        async def run():
            narrator = FakeNarrator()
            narrator.fail_always = True
            env = await build_env(tmp_path, narrator=narrator)
            session_id = await start_session(env, "tennis", "alice", "bob")
            env.clock.advance(seconds=env.settings.matchmaking_timeout_seconds + 1)
            report = await env.manager.run_matchmaking()
            session = await load_session(env, session_id)
            idle = await env.manager.idle_agents()
            await env.close()
            return session_id, report, session, idle

        session_id, report, session, idle = asyncio.run(run())
        assert report.cancelled == [session_id]
        assert session.status == "cancelled"
        assert sorted(a.id for a in idle) == ["alice", "bob"]

    def test_session_started_elsewhere_is_skipped(self, tmp_path):
        """Test matchmaking shrugs off a pending session another tick already started."""
        async def run():
            env = await build_env(tmp_path)
            await add_agents(env, "alice", "bob")
            session_id = await env.manager.create_session(scenario_id="tennis", start=False)

            start = env.manager.start_session

            async def started_by_another_tick(sid):
                await start(sid)
                return await start(sid)

            env.manager.start_session = started_by_another_tick
            report = await env.manager.run_matchmaking()
            session = await load_session(env, session_id)
            await env.close()
            return report, session

        report, session = asyncio.run(run())
        assert report.started == []
        assert report.cancelled == []
        assert session.status == "active"

    def test_start_of_active_session_is_a_no_op(self, tmp_path):
        """Test starting an already-started session returns False."""
        async def run():
            env = await build_env(tmp_path)
            session_id = await start_session(env, "tennis", "alice", "bob")
            started = await env.manager.start_session(session_id)
            calls = len(env.narrator.calls)
            await env.close()
            return started, calls

        started, calls = asyncio.run(run())
        assert started is False
        assert calls == 1


class TestJoin:
    """Tests for joining pending sessions."""

    def test_join_and_auto_start_when_full(self, tmp_path):
        """Test joins fill a session and start it."""
        async def run():
            env = await build_env(tmp_path)
            await add_agents(env, "alice", "bob", "carol")
            session_id = await env.manager.create_session(scenario_id="pub-debate", start=False)
            await add_agents(env, "dave", "erin", "frank")
            joined = await env.manager.join_session(session_id, "dave")
            with pytest.raises(AlreadyJoined):
                await env.manager.join_session(session_id, "dave")
            await env.manager.join_session(session_id, "erin")
            full = await env.manager.join_session(session_id, "frank")
            await env.close()
            return joined, full

        joined, full = asyncio.run(run())
        assert joined.status == "pending"
        assert len(joined.participants) == 4
        assert full.status == "active"
        assert len(full.participants) == 6

    def test_join_full_session(self, tmp_path):
        """Test joining a full session."""
        async def run():
            env = await build_env(tmp_path)
            await add_agents(env, "alice", "bob")
            session_id = await env.manager.create_session(scenario_id="tennis", start=False)
            await add_agents(env, "carol")
            try:
                await env.manager.join_session(session_id, "carol")
            finally:
                await env.close()

        with pytest.raises(SessionFull):
            asyncio.run(run())

    def test_concurrent_joins_never_overfill(self, tmp_path):
        """Test racing joins stop at the scenario's player cap."""
        async def run():
            env = await build_env(tmp_path)
            await add_agents(env, "alice", "bob", "carol")
            session_id = await env.manager.create_session(scenario_id="pub-debate", start=False)
            joiners = ["dave", "erin", "frank", "grace"]
            await add_agents(env, *joiners)
            results = await asyncio.gather(
                *(env.manager.join_session(session_id, agent_id) for agent_id in joiners),
                return_exceptions=True,
            )
            participants = await load_participants(env, session_id)
            session = await load_session(env, session_id)
            await env.close()
            return results, participants, session

        results, participants, session = asyncio.run(run())
        failures = [r for r in results if isinstance(r, Exception)]
        assert len(participants) == 6
        assert len(results) - len(failures) == 3
        assert len(failures) == 1
        assert isinstance(failures[0], (SessionFull, SessionNotPending))
        assert session.status == "active"

    def test_join_that_fills_session_survives_lost_start(self, tmp_path):
        """Test the filling join succeeds even if another invocation starts the session first."""
        async def run():
            env = await build_env(tmp_path)
            await add_agents(env, "alice", "bob", "carol")
            session_id = await env.manager.create_session(scenario_id="pub-debate", start=False)
            await add_agents(env, "dave", "erin", "frank")
            await env.manager.join_session(session_id, "dave")
            await env.manager.join_session(session_id, "erin")

            start = env.manager.start_session

            async def started_by_another_tick(sid):
                await start(sid)
                return await start(sid)

            env.manager.start_session = started_by_another_tick
            joined = await env.manager.join_session(session_id, "frank")
            await env.close()
            return joined

        joined = asyncio.run(run())
        assert joined.status == "active"
        assert len(joined.participants) == 6

    def test_join_requires_recent_activity(self, tmp_path):
        """Test only recently active agents can join."""
        async def run():
            env = await build_env(tmp_path)
            await add_agents(env, "alice", "bob", "carol")
            session_id = await env.manager.create_session(scenario_id="pub-debate", start=False)
            await add_agents(env, "sleepy", active_days_ago=30)
            errors = []
            for agent_id in ("sleepy", "ghost"):
                try:
                    await env.manager.join_session(session_id, agent_id)
                except (AgentNotEligible, AgentNotFound) as e:
                    errors.append(type(e))
            await env.close()
            return errors

        assert asyncio.run(run()) == [AgentNotEligible, AgentNotFound]

    def test_join_active_session_rejected(self, tmp_path):
        """Test joining a started session."""
        async def run():
            env = await build_env(tmp_path)
            session_id = await start_session(env, "pub-debate", "alice", "bob", "carol")
            await add_agents(env, "dave")
            try:
                await env.manager.join_session(session_id, "dave")
            finally:
                await env.close()

        with pytest.raises(SessionNotPending):
            asyncio.run(run())


class TestReadPath:
    """Tests for session detail, listing and active-session lookup."""

    def test_choice_round_preview_is_sealed(self, tmp_path):
        """Test decision-round submissions stay hidden."""
        async def run():
            env = await build_env(tmp_path)
            session_id = await start_session(env, "prisoners-dilemma", "alice", "bob")
            await env.intake.submit_action(session_id, "alice", "Hello there.")
            open_round = await env.manager.get_session_detail(session_id)
            await env.intake.submit_action(session_id, "bob", "Hi.")
            for _ in range(2):
                await env.intake.submit_action(session_id, "alice", "Talk.")
                await env.intake.submit_action(session_id, "bob", "Talk.")
            await env.intake.submit_action(session_id, "alice", "DEFECT")
            sealed = await env.manager.get_session_detail(session_id)
            await env.close()
            return open_round, sealed

        open_round, sealed = asyncio.run(run())
        assert not open_round.in_flight.sealed
        assert open_round.in_flight.submissions[0].content == "Hello there."
        assert open_round.in_flight.awaiting == ["Bob"]

        assert sealed.in_flight.round == 3
        assert sealed.in_flight.sealed
        assert sealed.in_flight.options == ["COOPERATE", "DEFECT"]
        assert [s.content for s in sealed.in_flight.submissions] == [None]
        assert sealed.in_flight.awaiting == ["Bob"]
        assert len(sealed.session.transcript) == 3

    def test_active_session_lookup(self, tmp_path):
        """Test an agent's active session and whether it owes an action."""
        async def run():
            env = await build_env(tmp_path)
            session_id = await start_session(env, "tennis", "alice", "bob")
            before = await env.manager.get_active_session("alice")
            await env.intake.submit_action(session_id, "alice", "Serve.")
            after = await env.manager.get_active_session("alice")
            nobody = await env.manager.get_active_session("zed")
            await env.close()
            return session_id, before, after, nobody

        session_id, before, after, nobody = asyncio.run(run())
        assert before.session.id == session_id
        assert before.needs_action
        assert before.current_prompt == "The Game Master narrates #1."
        assert not after.needs_action
        assert nobody is None

    def test_list_sessions_filters_by_status(self, tmp_path):
        """Test listing filters and pages sessions."""
        async def run():
            env = await build_env(tmp_path)
            await start_session(env, "tennis", "alice", "bob")
            await add_agents(env, "carol", "dave")
            await env.manager.create_session(scenario_id="tennis", start=False)
            everything = await env.manager.list_sessions()
            pending = await env.manager.list_sessions(status="pending")
            page = await env.manager.list_sessions(limit=1, offset=1)
            await env.close()
            return everything, pending, page

        everything, pending, page = asyncio.run(run())
        assert len(everything) == 2
        assert [s.status for s in pending] == ["pending"]
        assert len(page) == 1
