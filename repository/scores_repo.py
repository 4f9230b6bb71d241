import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy import and_, func, or_, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db.models import ScoreRecord as ScoreRecordRow
from schemas.score import GameStats, GameSummary, GlobalStanding, ScoreRecord

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """La persistencia falló (conexión caída, error de escritura...)."""


class ScoreStore(ABC):
    """
    Persistencia de ScoreRecord. Los registros se insertan una vez y no se
    editan ni borran; lo único que se completa después es el hash de la
    transacción on-chain.

    Orden por juego: score DESC, submitted_at ASC (gana quien llegó antes), id ASC.
    """

    name = "abstract"

    @abstractmethod
    def insert(self, record: ScoreRecord) -> int:
        ...

    @abstractmethod
    def query_top_n(self, game_id: int, n: int) -> list[ScoreRecord]:
        ...

    @abstractmethod
    def query_recent_duplicate(
        self,
        game_id: int,
        player_address: str,
        score: Optional[int],
        window_start: datetime,
    ) -> bool:
        """score=None compara solo (juego, jugador): la variante laxa."""

    @abstractmethod
    def aggregate_global(self, limit: int) -> list[GlobalStanding]:
        ...

    @abstractmethod
    def rank_of(self, record: ScoreRecord) -> int:
        """Posición 1-based de un registro ya guardado dentro de su juego."""

    @abstractmethod
    def attach_chain_tx(self, record_id: int, tx_hash: str) -> None:
        ...

    @abstractmethod
    def game_stats(self, game_id: int) -> GameStats:
        ...

    @abstractmethod
    def summary(self) -> list[GameSummary]:
        ...

    def ping(self) -> None:
        """Lanza StoreError si el backend no responde."""


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite devuelve datetimes naive; todo lo que guardamos es UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_record(row: ScoreRecordRow) -> ScoreRecord:
    record = ScoreRecord.model_validate(row)
    record.submitted_at = _as_utc(record.submitted_at)
    return record


class SqlScoreStore(ScoreStore):
    name = "sql"

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def insert(self, record: ScoreRecord) -> int:
        row = ScoreRecordRow(**record.model_dump(exclude={"id"}))
        with self._session_factory() as db:
            try:
                db.add(row)
                db.commit()
                db.refresh(row)
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"Error persisting score for game {record.game_id}: {e}", exc_info=True)
                raise StoreError("insert failed") from e
            return row.id

    def query_top_n(self, game_id: int, n: int) -> list[ScoreRecord]:
        with self._session_factory() as db:
            try:
                rows = (
                    db.query(ScoreRecordRow)
                    .filter(ScoreRecordRow.game_id == game_id)
                    .order_by(
                        ScoreRecordRow.score.desc(),
                        ScoreRecordRow.submitted_at.asc(),
                        ScoreRecordRow.id.asc(),
                    )
                    .limit(n)
                    .all()
                )
            except SQLAlchemyError as e:
                raise StoreError("top-n query failed") from e
            return [_to_record(r) for r in rows]

    def query_recent_duplicate(self, game_id, player_address, score, window_start) -> bool:
        with self._session_factory() as db:
            q = db.query(ScoreRecordRow.id).filter(
                ScoreRecordRow.game_id == game_id,
                ScoreRecordRow.player_address == player_address,
                ScoreRecordRow.submitted_at >= window_start,
            )
            if score is not None:
                q = q.filter(ScoreRecordRow.score == score)
            try:
                return q.first() is not None
            except SQLAlchemyError as e:
                raise StoreError("duplicate query failed") from e

    def aggregate_global(self, limit: int) -> list[GlobalStanding]:
        total = func.sum(ScoreRecordRow.score).label("total_score")
        last_played = func.max(ScoreRecordRow.submitted_at).label("last_played_at")
        with self._session_factory() as db:
            try:
                rows = (
                    db.query(
                        ScoreRecordRow.player_address,
                        total,
                        func.count(ScoreRecordRow.id).label("games_played"),
                        last_played,
                    )
                    .group_by(ScoreRecordRow.player_address)
                    .order_by(total.desc(), last_played.desc(), ScoreRecordRow.player_address.asc())
                    .limit(limit)
                    .all()
                )
                names = self._latest_names(db, [r[0] for r in rows])
            except SQLAlchemyError as e:
                raise StoreError("global aggregate failed") from e

        return [
            GlobalStanding(
                player_address=r[0],
                display_name=names.get(r[0]),
                total_score=int(r[1] or 0),
                games_played=r[2],
                last_played_at=_as_utc(r[3]),
            )
            for r in rows
        ]

    @staticmethod
    def _latest_names(db: Session, addresses: list[str]) -> dict[str, str]:
        if not addresses:
            return {}
        rows = (
            db.query(ScoreRecordRow.player_address, ScoreRecordRow.display_name)
            .filter(
                ScoreRecordRow.player_address.in_(addresses),
                ScoreRecordRow.display_name.isnot(None),
            )
            .order_by(ScoreRecordRow.submitted_at.asc(), ScoreRecordRow.id.asc())
            .all()
        )
        # el último que se escribe gana: el nombre más reciente
        return {address: name for address, name in rows if name}

    def rank_of(self, record: ScoreRecord) -> int:
        with self._session_factory() as db:
            try:
                better = (
                    db.query(func.count(ScoreRecordRow.id))
                    .filter(
                        ScoreRecordRow.game_id == record.game_id,
                        or_(
                            ScoreRecordRow.score > record.score,
                            and_(
                                ScoreRecordRow.score == record.score,
                                ScoreRecordRow.submitted_at < record.submitted_at,
                            ),
                            and_(
                                ScoreRecordRow.score == record.score,
                                ScoreRecordRow.submitted_at == record.submitted_at,
                                ScoreRecordRow.id < record.id,
                            ),
                        ),
                    )
                    .scalar()
                )
            except SQLAlchemyError as e:
                raise StoreError("rank query failed") from e
        return better + 1

    def attach_chain_tx(self, record_id: int, tx_hash: str) -> None:
        with self._session_factory() as db:
            try:
                row = db.get(ScoreRecordRow, record_id)
                if row is None:
                    logger.warning(f"Cannot attach tx {tx_hash}: score record {record_id} not found")
                    return
                row.chain_tx_hash = tx_hash
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                raise StoreError("attach chain tx failed") from e

    def game_stats(self, game_id: int) -> GameStats:
        with self._session_factory() as db:
            try:
                row = (
                    db.query(
                        func.count(ScoreRecordRow.id),
                        func.avg(ScoreRecordRow.score),
                        func.max(ScoreRecordRow.score),
                        func.min(ScoreRecordRow.score),
                    )
                    .filter(ScoreRecordRow.game_id == game_id)
                    .one()
                )
            except SQLAlchemyError as e:
                raise StoreError("game stats failed") from e
        if not row[0]:
            return GameStats(game_id=game_id)
        return GameStats(
            game_id=game_id,
            total_players=row[0],
            average_score=float(row[1]),
            highest_score=row[2],
            lowest_score=row[3],
        )

    def summary(self) -> list[GameSummary]:
        with self._session_factory() as db:
            try:
                rows = (
                    db.query(
                        ScoreRecordRow.game_id,
                        func.count(ScoreRecordRow.id),
                        func.max(ScoreRecordRow.score),
                        func.max(ScoreRecordRow.submitted_at),
                    )
                    .group_by(ScoreRecordRow.game_id)
                    .order_by(ScoreRecordRow.game_id.asc())
                    .all()
                )
            except SQLAlchemyError as e:
                raise StoreError("summary failed") from e
        return [
            GameSummary(game_id=r[0], total_players=r[1], top_score=r[2], last_played=_as_utc(r[3]))
            for r in rows
        ]

    def ping(self) -> None:
        with self._session_factory() as db:
            try:
                db.execute(
                    text("SELECT 1"),
                    execution_options={"timeout": 1, "statement_timeout": 1000},
                ).scalar()
            except SQLAlchemyError as e:
                raise StoreError("database unreachable") from e
