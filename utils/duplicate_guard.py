import logging
from datetime import datetime, timedelta

from repository.scores_repo import ScoreStore
from schemas.score import ScoreSubmission
from utils.wallet import short_address

logger = logging.getLogger(__name__)

DUPLICATE_SUBMISSION = "duplicate_submission"


class DuplicateGuard:
    """
    Rechaza reenvíos: mismo (juego, jugador, score) dentro de la ventana.

    Es una heurística por coincidencia, no una clave de idempotencia: dos
    partidas distintas con el mismo score dentro de la ventana también se
    rechazan. Con match_score=False se compara solo (juego, jugador).

    Lectura y escritura no son atómicas: dos envíos simultáneos pueden pasar
    ambos antes de que cualquiera quede guardado.
    """

    def __init__(self, store: ScoreStore, window_seconds: int = 60, match_score: bool = True):
        self.store = store
        self.window = timedelta(seconds=window_seconds)
        self.match_score = match_score

    def is_duplicate(self, submission: ScoreSubmission, now: datetime) -> bool:
        found = self.store.query_recent_duplicate(
            submission.game_id,
            submission.player_address,
            submission.score if self.match_score else None,
            now - self.window,
        )
        if found:
            logger.info(
                f"Duplicate submission from {short_address(submission.player_address)} "
                f"for game {submission.game_id} ({submission.score} pts)"
            )
        return found
