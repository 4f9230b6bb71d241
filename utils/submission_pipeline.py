import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Literal

from repository.scores_repo import ScoreStore, StoreError
from schemas.score import ScoreRecord
from utils.chain_anchor import AnchorResult, ChainAnchor
from utils.duplicate_guard import DUPLICATE_SUBMISSION, DuplicateGuard
from utils.errors import SubmissionRejected
from utils.game_rules import GameRule
from utils.identity_resolver import IdentityResolver
from utils.score_validator import validate_submission
from utils.wallet import short_address

logger = logging.getLogger(__name__)

STORE_ERROR = "store_error"
CHAIN_ANCHOR_UNAVAILABLE = "chain_anchor_unavailable"
CHAIN_ANCHOR_FAILED = "chain_anchor_failed"

ChainPolicy = Literal["best_effort", "mandatory"]


@dataclass
class SubmissionOutcome:
    record: ScoreRecord
    rank: int
    anchor_pending: bool = False


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ScoreSubmissionPipeline:
    """
    validar -> anti-duplicado -> identidad (best-effort) -> guardar -> anclar.

    Política de anclaje:
      - best_effort: se guarda primero; el anclaje corre después de responder
        (anchor_pending) y su fallo deja el registro como solo-local.
      - mandatory: se ancla primero y solo se guarda si la transacción salió.
    """

    def __init__(
        self,
        store: ScoreStore,
        duplicate_guard: DuplicateGuard,
        identity_resolver: IdentityResolver,
        chain_anchor: ChainAnchor,
        chain_policy: ChainPolicy = "best_effort",
        rules: dict[int, GameRule] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.duplicate_guard = duplicate_guard
        self.identity_resolver = identity_resolver
        self.chain_anchor = chain_anchor
        self.chain_policy = chain_policy
        self.rules = rules
        self.clock = clock

    def submit(self, raw: Any) -> SubmissionOutcome:
        result = validate_submission(raw, self.rules)
        if not result.valid:
            raise SubmissionRejected(result.reason)
        submission = result.submission

        now = self.clock()
        try:
            duplicate = self.duplicate_guard.is_duplicate(submission, now)
        except StoreError:
            raise SubmissionRejected(STORE_ERROR, 500)
        if duplicate:
            raise SubmissionRejected(DUPLICATE_SUBMISSION)

        # El nombre del servicio de identidad manda; el del cliente es solo fallback
        display_name = self.identity_resolver.resolve(submission.player_address) or submission.display_name

        record = ScoreRecord(
            game_id=submission.game_id,
            score=submission.score,
            player_address=submission.player_address,
            display_name=display_name,
            duration_seconds=submission.duration_seconds,
            submitted_at=now,
        )

        if self.chain_policy == "mandatory":
            record.chain_tx_hash = self._anchor_first(record)

        try:
            record.id = self.store.insert(record)
            rank = self.store.rank_of(record)
        except StoreError:
            raise SubmissionRejected(STORE_ERROR, 500)

        logger.info(
            f"Score {record.score} saved for game {record.game_id} "
            f"from {short_address(record.player_address)}, rank {rank}"
        )
        return SubmissionOutcome(
            record=record,
            rank=rank,
            anchor_pending=self.chain_policy == "best_effort",
        )

    def _anchor_first(self, record: ScoreRecord) -> str:
        if not self.chain_anchor.enabled:
            raise SubmissionRejected(CHAIN_ANCHOR_UNAVAILABLE, 503)
        anchored = self.chain_anchor.anchor(record.player_address, record.score, 1)
        if not anchored.success:
            logger.error(f"Mandatory anchor failed, score not recorded: {anchored.error}")
            raise SubmissionRejected(CHAIN_ANCHOR_FAILED, 502)
        return anchored.tx_hash

    def anchor_saved_record(self, record: ScoreRecord) -> AnchorResult:
        """Tarea en segundo plano de la política best_effort. No lanza."""
        anchored = self.chain_anchor.anchor(record.player_address, record.score, 1)
        if not anchored.success:
            logger.warning(
                f"Score {record.id} saved locally but chain anchor failed: {anchored.error}"
            )
            return anchored
        try:
            self.store.attach_chain_tx(record.id, anchored.tx_hash)
        except StoreError as e:
            logger.error(f"Anchored tx {anchored.tx_hash} could not be attached to score {record.id}: {e}")
        return anchored
