from typing import Annotated

from fastapi import APIRouter, Depends, Request

from dependencies import get_chain_anchor, get_rules
from utils.chain_anchor import ChainAnchor
from utils.game_rules import GameRule, list_games

router = APIRouter(prefix="/api", tags=["games"])


@router.get("/games")
def get_games(rules: Annotated[dict[int, GameRule], Depends(get_rules)]):
    """Tabla de reglas: cotas de plausibilidad por juego."""
    games = list_games(rules)
    return {"success": True, "games": games, "totalGames": len(games)}


@router.get("/config")
def get_public_config(
    request: Request,
    rules: Annotated[dict[int, GameRule], Depends(get_rules)],
    chain_anchor: Annotated[ChainAnchor, Depends(get_chain_anchor)],
):
    return {
        "contractAddress": chain_anchor.contract_address,
        "chainEnabled": chain_anchor.enabled,
        "chainPolicy": request.app.state.settings.CHAIN_POLICY,
        "supportedGames": [{"id": g["id"], "name": g["name"]} for g in list_games(rules)],
    }
