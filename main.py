import logging
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette import status as starlette_status
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import Settings, settings as default_settings
from db import database
from repository.leaderboard_repo import LeaderboardQueryEngine
from repository.memory_store import InMemoryScoreStore
from repository.scores_repo import ScoreStore, SqlScoreStore
from routers import games, health, scores
from utils.chain_anchor import ChainAnchor, build_chain_anchor
from utils.duplicate_guard import DuplicateGuard
from utils.errors import ApiError
from utils.game_rules import GAME_RULES, GameRule
from utils.identity_resolver import IdentityResolver
from utils.limiter import configure_limiter
from utils.submission_pipeline import ScoreSubmissionPipeline, utc_now

logger = logging.getLogger(__name__)

# En dev añadimos orígenes locales comunes
_local_dev = [
    "http://127.0.0.1:5500", "http://localhost:5500",
    "http://localhost:8080", "http://localhost:3000"
]


def build_store(settings: Settings) -> ScoreStore:
    if settings.STORE_BACKEND == "memory":
        return InMemoryScoreStore()
    database.Base.metadata.create_all(bind=database.engine)
    return SqlScoreStore(database.SessionLocal)


def create_app(
    settings: Settings = default_settings,
    store: Optional[ScoreStore] = None,
    chain_anchor: Optional[ChainAnchor] = None,
    identity_resolver: Optional[IdentityResolver] = None,
    rules: Optional[dict[int, GameRule]] = None,
    clock: Callable = utc_now,
) -> FastAPI:
    """Arma la app con todos los componentes construidos una sola vez."""
    logging.basicConfig(level=settings.LOG_LEVEL)

    # El store en memoria define __len__: vacío es falsy, no usar `or`
    if store is None:
        store = build_store(settings)
    if chain_anchor is None:
        chain_anchor = build_chain_anchor(settings)
    if identity_resolver is None:
        identity_resolver = IdentityResolver(
            settings.IDENTITY_SERVICE_URL, timeout=settings.IDENTITY_TIMEOUT_SECONDS
        )
    if rules is None:
        rules = GAME_RULES

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            f"Leaderboard ready: store={store.name}, chain={'on' if chain_anchor.enabled else 'off'}, "
            f"policy={settings.CHAIN_POLICY}, games={len(rules)}"
        )
        yield
        identity_resolver.close()

    app = FastAPI(title="Playhouse Leaderboard", lifespan=lifespan)

    app.state.settings = settings
    app.state.rules = rules
    app.state.store = store
    app.state.chain_anchor = chain_anchor
    app.state.leaderboard = LeaderboardQueryEngine(store)
    app.state.pipeline = ScoreSubmissionPipeline(
        store=store,
        duplicate_guard=DuplicateGuard(
            store,
            window_seconds=settings.DUPLICATE_WINDOW_SECONDS,
            match_score=settings.DUPLICATE_MATCH_SCORE,
        ),
        identity_resolver=identity_resolver,
        chain_anchor=chain_anchor,
        chain_policy=settings.CHAIN_POLICY,
        rules=rules,
        clock=clock,
    )

    app.state.limiter = configure_limiter(settings)
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # === CORS estricto según entorno ===
    allow_origins = (
        settings.ALLOWED_ORIGINS
        if settings.ENV == "production"
        else list({*settings.ALLOWED_ORIGINS, *_local_dev})
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["Content-Length", "Content-Type"],
        max_age=600,
    )

    app.include_router(scores.router)
    app.include_router(games.router)
    app.include_router(health.router)

    _register_error_handlers(app)

    @app.get("/", include_in_schema=False)
    def root():
        return RedirectResponse("/docs")

    return app


def _register_error_handlers(app: FastAPI) -> None:
    # === Handlers de error coherentes ===
    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": exc.reason},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exc_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.status_code,
                "message": exc.detail or "HTTP error",
                "path": str(request.url.path),
            },
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exc_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=starlette_status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": 422,
                "message": "Invalid parameters",
                "details": jsonable_errors(exc),
                "path": str(request.url.path),
            },
        )

    @app.exception_handler(Exception)
    async def unhandled_exc_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=starlette_status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": 500,
                "message": "Unexpected error",
                "path": str(request.url.path),
            },
        )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [{"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")} for e in exc.errors()]


app = create_app()
