from sqlalchemy import Column, DateTime, Index, Integer, String

from db import database


class ScoreRecord(database.Base):
    __tablename__ = "score_records"

    id = Column(Integer, primary_key=True)
    game_id = Column(Integer, nullable=False)
    score = Column(Integer, nullable=False)
    player_address = Column(String(42), nullable=False)
    display_name = Column(String, nullable=True)
    duration_seconds = Column(Integer, nullable=False)
    # Asignado por el servidor al insertar, nunca por el cliente
    submitted_at = Column(DateTime(timezone=True), nullable=False, index=True)
    # Vacío = registro solo local (sin anclaje on-chain)
    chain_tx_hash = Column(String(66), nullable=True)

    __table_args__ = (
        Index("ix_score_records_game_score", "game_id", "score"),
        Index("ix_score_records_player_game", "player_address", "game_id"),
    )
