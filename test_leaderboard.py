import unittest
from datetime import datetime, timedelta, timezone

from conftest import PLAYER_A, PLAYER_B
from repository.leaderboard_repo import LeaderboardQueryEngine, format_identity
from repository.memory_store import InMemoryScoreStore
from schemas.score import ScoreRecord
from utils.duplicate_guard import DuplicateGuard
from utils.game_rules import GAME_RULES
from utils.score_validator import validate_submission

T0 = datetime(2026, 10, 17, 12, 0, 0, tzinfo=timezone.utc)


class TestFormatIdentity(unittest.TestCase):
    def test_prefers_display_name(self):
        self.assertEqual(format_identity("satoshi", PLAYER_A), "satoshi")

    def test_truncates_address(self):
        self.assertEqual(format_identity(None, PLAYER_A), "0xabc0...0123")
        self.assertEqual(format_identity("", PLAYER_A), "0xabc0...0123")

    def test_anonymous(self):
        self.assertEqual(format_identity(None, None), "Anonymous")


class TestLeaderboardQueryEngine(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryScoreStore()
        self.engine = LeaderboardQueryEngine(self.store)

    def add(self, game_id, score, player, at, name=None):
        self.store.insert(ScoreRecord(
            game_id=game_id, score=score, player_address=player, display_name=name,
            duration_seconds=60, submitted_at=T0 + timedelta(seconds=at),
        ))

    def test_per_game_ranks_are_positions(self):
        self.add(1, 10, PLAYER_A, 0)
        self.add(1, 30, PLAYER_B, 1, name="bob")
        self.add(1, 20, PLAYER_A, 2)
        view = self.engine.per_game(1, GAME_RULES[1], limit=2)
        self.assertEqual(view.total, 2)
        self.assertEqual([(e.rank, e.score) for e in view.entries], [(1, 30), (2, 20)])
        self.assertEqual(view.entries[0].display_name, "bob")

    def test_global_view(self):
        self.add(1, 50, PLAYER_A, 0)
        self.add(2, 30, PLAYER_A, 1)
        self.add(1, 60, PLAYER_B, 2)
        view = self.engine.global_view(limit=10)
        dumped = view.model_dump(by_alias=True, mode="json")
        self.assertEqual(dumped["gameId"], "global")
        first = dumped["entries"][0]
        self.assertEqual(first["playerAddress"], PLAYER_A)
        self.assertEqual(first["totalScore"], 80)
        self.assertEqual(first["gamesPlayed"], 2)


class TestDuplicateGuard(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryScoreStore()
        submission = validate_submission(
            {"gameId": 1, "score": 500, "durationSeconds": 15, "playerAddress": PLAYER_A}
        ).submission
        self.submission = submission
        self.store.insert(ScoreRecord(
            game_id=1, score=500, player_address=PLAYER_A,
            duration_seconds=15, submitted_at=T0,
        ))

    def test_inside_window(self):
        guard = DuplicateGuard(self.store, window_seconds=60)
        self.assertTrue(guard.is_duplicate(self.submission, T0 + timedelta(seconds=59)))

    def test_window_edge_and_after(self):
        guard = DuplicateGuard(self.store, window_seconds=60)
        self.assertTrue(guard.is_duplicate(self.submission, T0 + timedelta(seconds=60)))
        self.assertFalse(guard.is_duplicate(self.submission, T0 + timedelta(seconds=61)))

    def test_loose_key_ignores_score(self):
        other = self.submission.model_copy(update={"score": 900})
        self.assertFalse(DuplicateGuard(self.store).is_duplicate(other, T0))
        self.assertTrue(DuplicateGuard(self.store, match_score=False).is_duplicate(other, T0))


if __name__ == "__main__":
    unittest.main()
