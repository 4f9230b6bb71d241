from fastapi import Request

from config import Settings
from repository.leaderboard_repo import LeaderboardQueryEngine
from repository.scores_repo import ScoreStore
from utils.chain_anchor import ChainAnchor
from utils.game_rules import GameRule
from utils.submission_pipeline import ScoreSubmissionPipeline

# Los componentes se construyen una sola vez en create_app() y viven en app.state


def get_pipeline(request: Request) -> ScoreSubmissionPipeline:
    return request.app.state.pipeline


def get_leaderboard(request: Request) -> LeaderboardQueryEngine:
    return request.app.state.leaderboard


def get_store(request: Request) -> ScoreStore:
    return request.app.state.store


def get_chain_anchor(request: Request) -> ChainAnchor:
    return request.app.state.chain_anchor


def get_rules(request: Request) -> dict[int, GameRule]:
    return request.app.state.rules


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
