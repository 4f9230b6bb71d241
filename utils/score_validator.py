import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from schemas.score import ScoreSubmission
from utils.game_rules import GameRule, get_game_rule
from utils.wallet import is_valid_address, normalize_address, short_address

logger = logging.getLogger(__name__)

MISSING_FIELD = "missing_field"
INVALID_GAME_TYPE = "invalid_game_type"
INVALID_PLAYER_ADDRESS = "invalid_player_address"
SCORE_OUT_OF_BOUNDS = "score_out_of_bounds"
DURATION_TOO_SHORT = "duration_too_short"


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    reason: Optional[str] = None
    submission: Optional[ScoreSubmission] = None
    rule: Optional[GameRule] = None

    @classmethod
    def invalid(cls, reason: str) -> "ValidationResult":
        return cls(valid=False, reason=reason)


def validate_submission(
    raw: Any,
    rules: dict[int, GameRule] | None = None,
) -> ValidationResult:
    """
    Validates a client-reported score against the plausibility bounds of its game.

    The client computes the score in the browser, so nothing here proves fair
    play: it only rejects results that are impossible for the game (too high or
    too fast). Slow sessions are never penalized.

    Checks run in order and stop at the first failure:
        0. structure: every required field present and of the right type
        1. gameId is a known game
        2. playerAddress is a valid account
        3. 0 < score <= maxScore
        4. durationSeconds >= minDuration

    Never raises: malformed input is reported as ``missing_field``.

    Returns:
        ValidationResult with the parsed submission (address lowercased) when valid.
    """
    if not isinstance(raw, Mapping):
        return ValidationResult.invalid(MISSING_FIELD)

    try:
        submission = ScoreSubmission.model_validate(raw)
    except ValidationError as e:
        fields = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
        logger.info(f"Rejected malformed submission, fields: {fields}")
        return ValidationResult.invalid(MISSING_FIELD)

    rule = get_game_rule(submission.game_id, rules)
    if rule is None:
        logger.warning(f"Rejected unknown game {submission.game_id}")
        return ValidationResult.invalid(INVALID_GAME_TYPE)

    if not is_valid_address(submission.player_address):
        logger.warning(f"Rejected invalid player address for game {submission.game_id}")
        return ValidationResult.invalid(INVALID_PLAYER_ADDRESS)
    submission.player_address = normalize_address(submission.player_address)
    player = short_address(submission.player_address)

    if submission.score <= 0 or submission.score > rule["max_score"]:
        logger.warning(
            f"Rejected score {submission.score} for {rule['name']} from {player} "
            f"(max {rule['max_score']})"
        )
        return ValidationResult.invalid(SCORE_OUT_OF_BOUNDS)

    # Solo se acota por abajo: una partida lenta/inactiva no es sospechosa
    if submission.duration_seconds < rule["min_duration"]:
        logger.warning(
            f"Rejected impossible speed: {submission.score} pts in {submission.duration_seconds}s "
            f"for {rule['name']} from {player} (min {rule['min_duration']}s)"
        )
        return ValidationResult.invalid(DURATION_TOO_SHORT)

    return ValidationResult(valid=True, submission=submission, rule=rule)
