"""Tests for outcome recording, trust updates and outcome analytics."""
import json
import os
import tempfile
import unittest
from datetime import datetime
from unittest.mock import AsyncMock

from foodmatch.core.config import EngineConfig
from foodmatch.core.logging import EventLogger
from foodmatch.core.types import Listing, Match, MatchOutcome, MatchScores, User
from foodmatch.evaluation.metrics import compute_outcome_stats
from foodmatch.matching.engine import MatchingEngine
from foodmatch.matching.insights import FAIR_TRADE
from foodmatch.matching.trust import NoopTrustPolicy, RatingTrustPolicy

NOW = datetime(2024, 7, 15, 12, 0)


def _match(match_id="m1", total=7.5):
    offer = Listing("o", type="food", user=User("giver"))
    request = Listing("r", type="food", user=User("taker"))
    return Match(match_id, offer, request, MatchScores(total=total, value=8.0), FAIR_TRADE)


class _Learner:
    def __init__(self):
        self.seen = []

    def learn_from_outcome(self, match, outcome):
        self.seen.append((match.id, outcome.success))


class TestRecordOutcome(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.ai = AsyncMock()
        self.ai.learn_from_outcome = AsyncMock(return_value=True)
        self.engine = MatchingEngine(self.ai, clock=lambda: NOW)

    async def test_history_and_learning(self):
        match = _match()
        outcome = MatchOutcome(success=True, rating=5)
        await self.engine.record_match_outcome(match, outcome)

        entry = self.engine.get_history("m1")
        self.assertIsNotNone(entry)
        self.assertIs(entry.match, match)
        self.assertEqual(entry.outcome, outcome)
        self.assertEqual(entry.timestamp, NOW)
        self.ai.learn_from_outcome.assert_awaited_once_with(match, outcome)

    async def test_rerecording_overwrites(self):
        match = _match()
        await self.engine.record_match_outcome(match, MatchOutcome(success=True))
        with self.assertLogs("foodmatch.matching.engine", level="WARNING"):
            await self.engine.record_match_outcome(match, MatchOutcome(success=False))
        self.assertFalse(self.engine.get_history("m1").outcome.success)
        self.assertEqual(len(self.engine.history), 1)

    async def test_outcome_mapping_is_accepted(self):
        await self.engine.record_match_outcome(
            _match(), {"success": True, "rating": "4", "feedback": "great"},
        )
        outcome = self.engine.get_history("m1").outcome
        self.assertEqual(outcome, MatchOutcome(success=True, rating=4.0, feedback="great"))

    async def test_invalid_outcome_is_reported(self):
        await self.engine.record_match_outcome(_match(), "delivered")
        self.assertIsNone(self.engine.get_history("m1"))
        self.assertEqual(self.engine.reporter.recent[0].where, "record_match_outcome")
        self.ai.learn_from_outcome.assert_not_awaited()

    async def test_works_without_delegate(self):
        engine = MatchingEngine(clock=lambda: NOW)
        await engine.record_match_outcome(_match(), MatchOutcome(success=True))
        self.assertIsNotNone(engine.get_history("m1"))
        self.assertEqual(engine.reporter.count, 0)

    async def test_sync_learner(self):
        learner = _Learner()
        engine = MatchingEngine(learner, clock=lambda: NOW)
        await engine.record_match_outcome(_match(), MatchOutcome(success=False))
        self.assertEqual(learner.seen, [("m1", False)])

    async def test_learning_failure_keeps_history(self):
        self.ai.learn_from_outcome.side_effect = RuntimeError("memory full")
        await self.engine.record_match_outcome(_match(), MatchOutcome(success=True))
        self.assertIsNotNone(self.engine.get_history("m1"))
        self.assertEqual(self.engine.reporter.recent[-1].where, "learn_from_outcome")


class TestTrustUpdates(unittest.IsolatedAsyncioTestCase):

    async def test_default_policy_leaves_trust_unchanged(self):
        engine = MatchingEngine(clock=lambda: NOW)
        self.assertIsInstance(engine.trust_policy, NoopTrustPolicy)
        await engine.record_match_outcome(_match(), MatchOutcome(success=True, rating=5))
        self.assertEqual(engine.trust_score_for(User("giver")), 5.0)
        self.assertEqual(engine.trust_scores, {})

    async def test_rating_policy_from_config(self):
        cfg = EngineConfig()
        cfg.trust.policy = "rating"
        engine = MatchingEngine(config=cfg, clock=lambda: NOW)
        self.assertIsInstance(engine.trust_policy, RatingTrustPolicy)

        await engine.record_match_outcome(_match(), MatchOutcome(success=True, rating=5))
        # 5 + 0.5 = 5.5, then 20% of the way to 10
        self.assertAlmostEqual(engine.trust_scores["giver"], 6.4)
        self.assertAlmostEqual(engine.trust_scores["taker"], 6.4)

    async def test_failure_lowers_trust(self):
        engine = MatchingEngine(trust_policy=RatingTrustPolicy(), clock=lambda: NOW)
        await engine.record_match_outcome(_match(), MatchOutcome(success=False))
        self.assertAlmostEqual(engine.trust_scores["giver"], 4.0)


class TestRatingTrustPolicy(unittest.TestCase):

    def test_clamped_to_range(self):
        policy = RatingTrustPolicy(success_step=5.0, rating_weight=0.0)
        self.assertEqual(policy.adjust(9.0, MatchOutcome(success=True), "offer"), 10.0)
        self.assertEqual(policy.adjust(0.5, MatchOutcome(success=False), "request"), 0.0)


class TestEventLog(unittest.IsolatedAsyncioTestCase):

    async def test_outcome_written_to_events(self):
        with tempfile.TemporaryDirectory() as tmp:
            events = EventLogger(tmp)
            engine = MatchingEngine(event_logger=events, clock=lambda: NOW)
            await engine.record_match_outcome(_match(), MatchOutcome(success=True, rating=3))
            events.close()

            with open(os.path.join(tmp, "events.jsonl")) as f:
                records = [json.loads(line) for line in f]

        self.assertEqual(len(records), 1)
        self.assertEqual(records[0]["event"], "outcome")
        self.assertEqual(records[0]["match_id"], "m1")
        self.assertEqual(records[0]["rating"], 3)
        self.assertEqual(records[0]["recorded_at"], NOW.isoformat())


class TestOutcomeStats(unittest.IsolatedAsyncioTestCase):

    def test_empty(self):
        self.assertEqual(compute_outcome_stats([])["total_outcomes"], 0)

    async def test_aggregates_history(self):
        engine = MatchingEngine(clock=lambda: NOW)
        await engine.record_match_outcome(_match("m1", 8.0), MatchOutcome(success=True, rating=5))
        await engine.record_match_outcome(_match("m2", 6.0), MatchOutcome(success=False, rating=2))
        await engine.record_match_outcome(_match("m3", 7.0), MatchOutcome(success=True))

        stats = compute_outcome_stats(engine.history)
        self.assertEqual(stats["total_outcomes"], 3)
        self.assertEqual(stats["successes"], 2)
        self.assertAlmostEqual(stats["success_rate"], 0.6667)
        self.assertAlmostEqual(stats["mean_rating"], 3.5)
        self.assertAlmostEqual(stats["mean_total_score"], 7.0)


if __name__ == "__main__":
    unittest.main()
