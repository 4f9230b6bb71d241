from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status, Request

from dependencies import get_chain_anchor, get_rules, get_store
from repository.scores_repo import ScoreStore, StoreError
from utils.chain_anchor import ChainAnchor
from utils.game_rules import GameRule
from utils.limiter import limiter
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health/live", status_code=status.HTTP_200_OK)
@limiter.exempt
async def health_live(request: Request):
    """
    Liveness check to ensure the process is running.
    """
    return {"status": "ok"}


@router.get("/health/ready", status_code=status.HTTP_200_OK)
@limiter.exempt
def health_ready(request: Request, store: Annotated[ScoreStore, Depends(get_store)]):
    """
    Readiness check to ensure the score store is reachable.
    """
    try:
        store.ping()
        return {"status": "ok"}
    except StoreError as e:
        # Internal log only, don't expose details to the user
        logger.error(f"Health check failed: score store is down or unreachable. Error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"status": "fail", "db": "down"}
        )


@router.get("/api/health")
@limiter.exempt
async def api_health(
    request: Request,
    store: Annotated[ScoreStore, Depends(get_store)],
    chain_anchor: Annotated[ChainAnchor, Depends(get_chain_anchor)],
    rules: Annotated[dict[int, GameRule], Depends(get_rules)],
):
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "chainEnabled": chain_anchor.enabled,
        "storeBackend": store.name,
        "games": len(rules),
    }
