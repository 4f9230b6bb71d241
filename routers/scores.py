from typing import Annotated, Any, Optional

from fastapi import APIRouter, BackgroundTasks, Body, Depends, Query, Request

from config import Settings
from dependencies import get_app_settings, get_leaderboard, get_pipeline, get_rules, get_store
from repository.leaderboard_repo import LeaderboardQueryEngine
from repository.scores_repo import ScoreStore, StoreError
from schemas.score import SubmitScoreResponse
from utils.errors import ApiError
from utils.game_rules import GameRule
from utils.limiter import limiter, submit_rate_limit
from utils.score_validator import INVALID_GAME_TYPE
from utils.submission_pipeline import STORE_ERROR, ScoreSubmissionPipeline

router = APIRouter(prefix="/api", tags=["scores"])

GLOBAL_BOARD = "global"


def _resolve_game(board: str, rules: dict[int, GameRule]) -> tuple[int, GameRule]:
    try:
        game_id = int(board)
    except ValueError:
        raise ApiError(INVALID_GAME_TYPE)
    rule = rules.get(game_id)
    if rule is None:
        raise ApiError(INVALID_GAME_TYPE)
    return game_id, rule


@router.post("/submit-score", response_model=SubmitScoreResponse, response_model_exclude_none=True)
@limiter.limit(submit_rate_limit)
def submit_score(
    request: Request,
    background_tasks: BackgroundTasks,
    pipeline: Annotated[ScoreSubmissionPipeline, Depends(get_pipeline)],
    payload: Annotated[Any, Body()] = None,
):
    """Guarda un score reportado por el cliente y devuelve su posición en el juego."""
    outcome = pipeline.submit(payload)
    if outcome.anchor_pending:
        # Se ancla después de responder: la latencia de la red no frena al cliente
        background_tasks.add_task(pipeline.anchor_saved_record, outcome.record)
    return SubmitScoreResponse(rank=outcome.rank, chain_tx_hash=outcome.record.chain_tx_hash)


@router.get("/leaderboard/{board}", response_model_exclude_none=True)
def get_leaderboard_view(
    board: str,
    leaderboard: Annotated[LeaderboardQueryEngine, Depends(get_leaderboard)],
    rules: Annotated[dict[int, GameRule], Depends(get_rules)],
    settings: Annotated[Settings, Depends(get_app_settings)],
    limit: Optional[int] = Query(default=None, ge=1),
):
    """Ranking de un juego (por id) o global (suma de scores por jugador).

    limit se recorta a MAX_LEADERBOARD_LIMIT; sin limit se usa el default del tablero.
    """
    try:
        if board == GLOBAL_BOARD:
            limit = min(limit or settings.DEFAULT_GLOBAL_LIMIT, settings.MAX_LEADERBOARD_LIMIT)
            view = leaderboard.global_view(limit)
        else:
            game_id, rule = _resolve_game(board, rules)
            limit = min(limit or settings.DEFAULT_LEADERBOARD_LIMIT, settings.MAX_LEADERBOARD_LIMIT)
            view = leaderboard.per_game(game_id, rule, limit)
    except StoreError:
        raise ApiError(STORE_ERROR, 500)
    return view.model_dump(by_alias=True, exclude_none=True, mode="json")


@router.get("/game-stats/{board}")
def get_game_stats(
    board: str,
    store: Annotated[ScoreStore, Depends(get_store)],
    rules: Annotated[dict[int, GameRule], Depends(get_rules)],
):
    game_id, rule = _resolve_game(board, rules)
    try:
        stats = store.game_stats(game_id)
    except StoreError:
        raise ApiError(STORE_ERROR, 500)
    return {
        "success": True,
        "gameId": game_id,
        "gameName": rule["name"],
        "totalPlayers": stats.total_players,
        "averageScore": stats.average_score,
        "highestScore": stats.highest_score,
        "lowestScore": stats.lowest_score,
    }


@router.get("/leaderboards-summary")
def get_leaderboards_summary(
    store: Annotated[ScoreStore, Depends(get_store)],
    rules: Annotated[dict[int, GameRule], Depends(get_rules)],
):
    try:
        summary = store.summary()
    except StoreError:
        raise ApiError(STORE_ERROR, 500)
    return {
        "success": True,
        "summary": [
            {
                "gameId": s.game_id,
                "gameName": rules[s.game_id]["name"] if s.game_id in rules else "Unknown",
                "totalPlayers": s.total_players,
                "topScore": s.top_score,
                "lastPlayed": s.last_played,
            }
            for s in summary
        ],
    }
