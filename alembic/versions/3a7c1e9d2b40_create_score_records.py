"""Create score_records table

Revision ID: 3a7c1e9d2b40
Revises:
Create Date: 2026-10-17 12:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3a7c1e9d2b40"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _table_exists(table_name: str) -> bool:
    bind = op.get_bind()
    insp = sa.inspect(bind)
    return table_name in insp.get_table_names()


def upgrade() -> None:
    # Idempotente: create_all() al arrancar puede haber creado la tabla antes
    if _table_exists("score_records"):
        return
    op.create_table(
        "score_records",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("game_id", sa.Integer(), nullable=False),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("player_address", sa.String(length=42), nullable=False),
        sa.Column("display_name", sa.String(), nullable=True),
        sa.Column("duration_seconds", sa.Integer(), nullable=False),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("chain_tx_hash", sa.String(length=66), nullable=True),
    )
    op.create_index("ix_score_records_submitted_at", "score_records", ["submitted_at"])
    op.create_index("ix_score_records_game_score", "score_records", ["game_id", "score"])
    op.create_index("ix_score_records_player_game", "score_records", ["player_address", "game_id"])


def downgrade() -> None:
    if not _table_exists("score_records"):
        return
    op.drop_index("ix_score_records_player_game", table_name="score_records")
    op.drop_index("ix_score_records_game_score", table_name="score_records")
    op.drop_index("ix_score_records_submitted_at", table_name="score_records")
    op.drop_table("score_records")
