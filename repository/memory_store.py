"""In-memory ScoreStore, para tests y para correr sin base de datos."""

import threading
from datetime import datetime
from typing import Optional

from repository.scores_repo import ScoreStore
from schemas.score import GameStats, GameSummary, GlobalStanding, ScoreRecord


def _game_order(record: ScoreRecord):
    return (-record.score, record.submitted_at, record.id)


class InMemoryScoreStore(ScoreStore):
    name = "memory"

    def __init__(self):
        self._records: list[ScoreRecord] = []
        self._next_id = 1
        self._lock = threading.Lock()

    def __len__(self):
        return len(self._records)

    def all(self) -> list[ScoreRecord]:
        with self._lock:
            return [r.model_copy() for r in self._records]

    def insert(self, record: ScoreRecord) -> int:
        with self._lock:
            stored = record.model_copy(update={"id": self._next_id})
            self._records.append(stored)
            self._next_id += 1
            return stored.id

    def query_top_n(self, game_id: int, n: int) -> list[ScoreRecord]:
        with self._lock:
            rows = sorted((r for r in self._records if r.game_id == game_id), key=_game_order)
            return [r.model_copy() for r in rows[:n]]

    def query_recent_duplicate(
        self,
        game_id: int,
        player_address: str,
        score: Optional[int],
        window_start: datetime,
    ) -> bool:
        with self._lock:
            return any(
                r.game_id == game_id
                and r.player_address == player_address
                and r.submitted_at >= window_start
                and (score is None or r.score == score)
                for r in self._records
            )

    def aggregate_global(self, limit: int) -> list[GlobalStanding]:
        with self._lock:
            by_player: dict[str, dict] = {}
            for r in sorted(self._records, key=lambda rec: (rec.submitted_at, rec.id)):
                acc = by_player.setdefault(
                    r.player_address,
                    {"total": 0, "count": 0, "last": r.submitted_at, "name": None},
                )
                acc["total"] += r.score
                acc["count"] += 1
                acc["last"] = max(acc["last"], r.submitted_at)
                if r.display_name:
                    acc["name"] = r.display_name

        standings = [
            GlobalStanding(
                player_address=address,
                display_name=acc["name"],
                total_score=acc["total"],
                games_played=acc["count"],
                last_played_at=acc["last"],
            )
            for address, acc in by_player.items()
        ]
        # totalScore DESC, lastPlayedAt DESC, dirección ASC
        standings.sort(key=lambda s: s.player_address)
        standings.sort(key=lambda s: (s.total_score, s.last_played_at), reverse=True)
        return standings[:limit]

    def rank_of(self, record: ScoreRecord) -> int:
        key = _game_order(record)
        with self._lock:
            return 1 + sum(
                1 for r in self._records if r.game_id == record.game_id and _game_order(r) < key
            )

    def attach_chain_tx(self, record_id: int, tx_hash: str) -> None:
        with self._lock:
            for i, r in enumerate(self._records):
                if r.id == record_id:
                    self._records[i] = r.model_copy(update={"chain_tx_hash": tx_hash})
                    return

    def game_stats(self, game_id: int) -> GameStats:
        with self._lock:
            scores = [r.score for r in self._records if r.game_id == game_id]
        if not scores:
            return GameStats(game_id=game_id)
        return GameStats(
            game_id=game_id,
            total_players=len(scores),
            average_score=sum(scores) / len(scores),
            highest_score=max(scores),
            lowest_score=min(scores),
        )

    def summary(self) -> list[GameSummary]:
        with self._lock:
            games: dict[int, list[ScoreRecord]] = {}
            for r in self._records:
                games.setdefault(r.game_id, []).append(r)
        return [
            GameSummary(
                game_id=game_id,
                total_players=len(rows),
                top_score=max(r.score for r in rows),
                last_played=max(r.submitted_at for r in rows),
            )
            for game_id, rows in sorted(games.items())
        ]
