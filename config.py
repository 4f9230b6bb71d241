# config.py
from functools import lru_cache
from typing import Annotated, Literal
from pydantic import SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

_PLACEHOLDER_KEYS = {"", "your_private_key_here"}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Entorno y CORS
    ENV: Literal["development", "production", "test"] = "development"
    ALLOWED_ORIGINS: Annotated[list[str], NoDecode] = []
    LOG_LEVEL: str = "INFO"

    # Persistencia
    DATABASE_URL: SecretStr = SecretStr("sqlite:///./leaderboard.db")
    STORE_BACKEND: Literal["sql", "memory"] = "sql"

    # Anclaje on-chain
    CHAIN_POLICY: Literal["best_effort", "mandatory"] = "best_effort"
    CHAIN_RPC_URL: str = "https://testnet-rpc.monad.xyz"
    CHAIN_CONTRACT_ADDRESS: str = "0xceCBFF203C8B6044F52CE23D914A1bfD997541A4"
    CHAIN_SIGNER_KEY: SecretStr | None = None
    CHAIN_TIMEOUT_SECONDS: float = 12
    CHAIN_GAS_BUFFER_PERCENT: int = 20

    # Servicio de identidad (nombre legible por wallet)
    IDENTITY_SERVICE_URL: str = "https://monad-games-id-site.vercel.app/api/check-wallet"
    IDENTITY_TIMEOUT_SECONDS: float = 2.5

    # Anti-duplicados y rankings
    DUPLICATE_WINDOW_SECONDS: int = 60
    DUPLICATE_MATCH_SCORE: bool = True
    DEFAULT_LEADERBOARD_LIMIT: int = 10
    DEFAULT_GLOBAL_LIMIT: int = 50
    MAX_LEADERBOARD_LIMIT: int = 100

    RATE_LIMIT_ENABLED: bool = True
    SUBMIT_RATE_LIMIT: str = "30/minute"

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def normalize_db_url(cls, v):
        if isinstance(v, SecretStr):
            v = v.get_secret_value()
        if isinstance(v, str) and v.startswith("postgres://"):
            v = v.replace("postgres://", "postgresql+psycopg2://", 1)
        return v

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def split_origins(cls, v):
        # Permite "a,b,c" en envs además de JSON
        if isinstance(v, str):
            return [o.strip() for o in v.split(",") if o.strip()]
        return v or []

    @field_validator("CHAIN_SIGNER_KEY", mode="before")
    @classmethod
    def drop_placeholder_key(cls, v):
        # El .env de ejemplo trae un placeholder: lo tratamos como "sin clave"
        raw = v.get_secret_value() if isinstance(v, SecretStr) else v
        if raw is None or raw.strip() in _PLACEHOLDER_KEYS:
            return None
        return raw.strip()

    @model_validator(mode="after")
    def validate_cors(self):
        if self.ENV == "production":
            if not self.ALLOWED_ORIGINS:
                raise ValueError("ALLOWED_ORIGINS empty in production.")
            if "*" in self.ALLOWED_ORIGINS:
                raise ValueError("CORS wildcard (*) not allowed in production.")
        return self

    @property
    def chain_enabled(self) -> bool:
        return self.CHAIN_SIGNER_KEY is not None


@lru_cache
def get_settings() -> Settings:
    return Settings()

settings = get_settings()
