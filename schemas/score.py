from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class ScoreSubmission(BaseModel):
    """Body de POST /api/submit-score.

    Acepta los nombres nuevos (gameId, durationSeconds, displayName) y los que
    siguen mandando los clientes viejos (gameType, gameDuration, playerName).
    """
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    game_id: int = Field(validation_alias=AliasChoices("gameId", "gameType", "game_id"))
    score: int
    duration_seconds: int = Field(
        validation_alias=AliasChoices("durationSeconds", "gameDuration", "duration_seconds")
    )
    player_address: str = Field(validation_alias=AliasChoices("playerAddress", "player_address"))
    display_name: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("displayName", "mgidUsername", "playerName", "display_name"),
    )

    @field_validator("game_id", "score", "duration_seconds", mode="before")
    @classmethod
    def reject_bool(cls, v):
        # bool es subclase de int: true llegaría como 1
        if isinstance(v, bool):
            raise ValueError("expected an integer, got a boolean")
        return v

    @field_validator("display_name")
    @classmethod
    def blank_name_is_none(cls, v):
        return v or None


class ScoreRecord(BaseModel):
    id: Optional[int] = None
    game_id: int
    score: int
    player_address: str
    display_name: Optional[str] = None
    duration_seconds: int
    submitted_at: datetime
    chain_tx_hash: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class GlobalStanding(BaseModel):
    player_address: str
    display_name: Optional[str] = None
    total_score: int
    games_played: int
    last_played_at: datetime


class GameStats(BaseModel):
    game_id: int
    total_players: int = 0
    average_score: float = 0
    highest_score: int = 0
    lowest_score: int = 0


class GameSummary(BaseModel):
    game_id: int
    total_players: int
    top_score: int
    last_played: datetime


# ---------- respuestas públicas (camelCase, como las consume el frontend) ----------

class _Public(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SubmitScoreResponse(_Public):
    success: bool = True
    rank: int
    chain_tx_hash: Optional[str] = Field(default=None, serialization_alias="chainTxHash")


class LeaderboardEntry(_Public):
    rank: int
    player_address: str = Field(serialization_alias="playerAddress")
    display_name: str = Field(serialization_alias="displayName")
    score: int
    submitted_at: datetime = Field(serialization_alias="submittedAt")
    duration_seconds: int = Field(serialization_alias="durationSeconds")
    chain_tx_hash: Optional[str] = Field(default=None, serialization_alias="chainTxHash")


class GlobalLeaderboardEntry(_Public):
    rank: int
    player_address: str = Field(serialization_alias="playerAddress")
    display_name: str = Field(serialization_alias="displayName")
    total_score: int = Field(serialization_alias="totalScore")
    games_played: int = Field(serialization_alias="gamesPlayed")
    last_played_at: datetime = Field(serialization_alias="lastPlayedAt")


class GameLeaderboardResponse(_Public):
    game_id: int = Field(serialization_alias="gameId")
    game_name: str = Field(serialization_alias="gameName")
    entries: list[LeaderboardEntry]
    total: int


class GlobalLeaderboardResponse(_Public):
    game_id: str = Field(default="global", serialization_alias="gameId")
    entries: list[GlobalLeaderboardEntry]
    total: int
