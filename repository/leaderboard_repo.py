from typing import Optional

from repository.scores_repo import ScoreStore
from schemas.score import (
    GameLeaderboardResponse,
    GlobalLeaderboardEntry,
    GlobalLeaderboardResponse,
    LeaderboardEntry,
)
from utils.game_rules import GameRule
from utils.wallet import short_address

ANONYMOUS = "Anonymous"


def format_identity(display_name: Optional[str], player_address: Optional[str]) -> str:
    """displayName si hay, si no la wallet recortada (0x1234...abcd), si no Anonymous."""
    return display_name or short_address(player_address) or ANONYMOUS


class LeaderboardQueryEngine:
    """Vistas de ranking calculadas al leer; no se guarda nada derivado."""

    def __init__(self, store: ScoreStore):
        self.store = store

    def per_game(self, game_id: int, rule: GameRule, limit: int) -> GameLeaderboardResponse:
        records = self.store.query_top_n(game_id, limit)
        entries = [
            LeaderboardEntry(
                rank=i + 1,
                player_address=r.player_address,
                display_name=format_identity(r.display_name, r.player_address),
                score=r.score,
                submitted_at=r.submitted_at,
                duration_seconds=r.duration_seconds,
                chain_tx_hash=r.chain_tx_hash,
            )
            for i, r in enumerate(records)
        ]
        return GameLeaderboardResponse(
            game_id=game_id, game_name=rule["name"], entries=entries, total=len(entries)
        )

    def global_view(self, limit: int) -> GlobalLeaderboardResponse:
        standings = self.store.aggregate_global(limit)
        entries = [
            GlobalLeaderboardEntry(
                rank=i + 1,
                player_address=s.player_address,
                display_name=format_identity(s.display_name, s.player_address),
                total_score=s.total_score,
                games_played=s.games_played,
                last_played_at=s.last_played_at,
            )
            for i, s in enumerate(standings)
        ]
        return GlobalLeaderboardResponse(entries=entries, total=len(entries))
