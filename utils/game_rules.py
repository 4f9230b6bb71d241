# -*- coding: utf-8 -*-
from typing import Optional, TypedDict


class GameRule(TypedDict):
    name: str
    max_score: int
    min_duration: int  # segundos


# Cotas de plausibilidad por juego. Cambiarlas requiere redeploy.
GAME_RULES: dict[int, GameRule] = {
    1: {"name": "Snake", "max_score": 10000, "min_duration": 10},
    2: {"name": "Memory", "max_score": 5000, "min_duration": 15},
    3: {"name": "Math", "max_score": 20000, "min_duration": 30},
    4: {"name": "Color", "max_score": 15000, "min_duration": 20},
    5: {"name": "Tetris", "max_score": 50000, "min_duration": 60},
    6: {"name": "Flappy", "max_score": 1000, "min_duration": 10},
    7: {"name": "Spelling", "max_score": 8000, "min_duration": 30},
    8: {"name": "Car Race", "max_score": 25000, "min_duration": 45},
    9: {"name": "Monad Runner", "max_score": 30000, "min_duration": 30},
    10: {"name": "Crypto Puzzle", "max_score": 12000, "min_duration": 60},
    11: {"name": "Token Collector", "max_score": 18000, "min_duration": 40},
    12: {"name": "Blockchain Tetris", "max_score": 60000, "min_duration": 90},
}


def get_game_rule(game_id: int, rules: dict[int, GameRule] | None = None) -> Optional[GameRule]:
    return (GAME_RULES if rules is None else rules).get(game_id)


def list_games(rules: dict[int, GameRule] | None = None) -> list[dict]:
    table = GAME_RULES if rules is None else rules
    return [
        {"id": game_id, "name": r["name"], "maxScore": r["max_score"], "minDuration": r["min_duration"]}
        for game_id, r in sorted(table.items())
    ]
