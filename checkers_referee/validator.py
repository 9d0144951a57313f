"""
Move validation: the authority on whether the platform accepts a claimed move.

The validator rebuilds the legal moves from the board before the move and
compares the claim against them. Checks run in order and stop at the first
failure:

1. every referenced cell index is in [0, 31]
2. a simple move is refused while any piece of the mover can jump
3. the destination (or captured/landing pair) is among the legal moves
4. after a jump the same player keeps the turn iff the jumper can jump
   again; after a simple move the turn always passes
5. a claimed winner matches the piece count of the resulting board

A malformed or illegal move is adversarial input and yields a Rejection. A
board snapshot that breaks the cell invariant raises InvalidBoardError.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import ValidationError

from checkers_referee.board import board_to_str, is_legal_index, to_array
from checkers_referee.config import RefereeConfig, ReportSettings, get_config
from checkers_referee.errors import InvalidBoardError, InvalidTurnError
from checkers_referee.moves import MoveGenerator
from checkers_referee.protocol import MoveDetail, MoveSubmission, decode_move, parse_operations
from checkers_referee.transition import BLACK_WINS, WHITE_WINS, NextState, apply_move
from checkers_referee.types import (
    EMPTY_TOKEN,
    Board,
    Color,
    Jump,
    ReportSink,
    TurnIndex,
    cell_from_token,
    is_valid_turn,
)

logger = logging.getLogger(__name__)


class RejectionReason(str, Enum):
    ILLEGAL_INDEX = "IllegalIndex"
    ILLEGAL_MOVE_SHAPE = "IllegalMoveShape"
    MANDATORY_JUMP_IGNORED = "MandatoryJumpIgnored"
    ILLEGAL_SIMPLE_MOVE = "IllegalSimpleMove"
    ILLEGAL_JUMP = "IllegalJump"
    ILLEGAL_TURN_TRANSITION = "IllegalTurnTransition"
    ILLEGAL_WINNER_CLAIM = "IllegalWinnerClaim"


@dataclass(frozen=True)
class Rejection:
    """Why a claimed move was refused, with enough context to file a report."""

    reason: RejectionReason
    message: str
    context: Dict[str, Any] = field(default_factory=dict)

    def to_report(self, settings: Optional[ReportSettings] = None) -> Dict[str, str]:
        """Payload for the abuse-notification collaborator."""
        settings = settings if settings is not None else get_config().report
        return {
            "email": settings.email,
            "emailSubject": settings.subject,
            "emailBody": f"{self.reason.value}: {self.message}",
        }


@dataclass(frozen=True)
class ValidationResult:
    rejection: Optional[Rejection] = None

    @property
    def ok(self) -> bool:
        return self.rejection is None

    @property
    def reason(self) -> Optional[RejectionReason]:
        return None if self.rejection is None else self.rejection.reason

    def __bool__(self) -> bool:
        return self.ok


ACCEPTED = ValidationResult()


class MoveValidator:
    """Validates claimed moves against independently generated legal moves."""

    def __init__(self, config: Optional[RefereeConfig] = None,
                 sink: Optional[ReportSink] = None) -> None:
        self.config = config if config is not None else get_config()
        self.generator = MoveGenerator(captures_mandatory=self.config.rules.captures_mandatory)
        self.sink = sink

    def validate(self, state_before: Mapping[str, str], move: Any,
                 turn_before: TurnIndex, turn_after: Any = None) -> ValidationResult:
        """Validate move played from state_before by the side on turn_before.

        turn_after is the turn index the move claims to hand over to; when
        None it is read from the move's setTurn operation.
        """
        if not is_valid_turn(turn_before):
            raise InvalidTurnError("Turn index before move must be 0 or 1",
                                   context={"turn": turn_before})
        board = to_array(state_before)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Validating move for turn %d on\n%s", turn_before, board_to_str(board))

        try:
            operations = parse_operations(move)
            detail = decode_move(operations)
        except ValueError as e:
            return self._reject(RejectionReason.ILLEGAL_MOVE_SHAPE, str(e))
        if turn_after is None:
            turn_after = detail.set_turn

        if not 1 <= len(detail.hops) <= 2:
            return self._reject(RejectionReason.ILLEGAL_MOVE_SHAPE,
                                f"Move must have one or two hops, got {len(detail.hops)}",
                                hops=detail.hops)

        for index in detail.indices:
            if not is_legal_index(index):
                return self._reject(RejectionReason.ILLEGAL_INDEX,
                                    "Cell index out of range", indices=detail.indices)

        for index, token in detail.written:
            try:
                cell_from_token(token)
            except ValueError:
                return self._reject(RejectionReason.ILLEGAL_MOVE_SHAPE,
                                    "Unknown cell token", index=index, token=token)

        rejection = (self._check_mandatory_jump(board, detail, turn_before)
                     or self._check_legality(board, detail, turn_before)
                     or self._check_written_cells(board, detail))
        if rejection is not None:
            return self._report(rejection)

        next_state = apply_move(state_before, operations, turn_before)
        rejection = (self._check_turn_transition(next_state.board, detail, turn_before, turn_after)
                     or self._check_winner(next_state, detail))
        if rejection is not None:
            return self._report(rejection)

        logger.debug("Accepted move %s -> %s for turn %d",
                     detail.piece_index, detail.hops, turn_before)
        return ACCEPTED

    # ---- pipeline steps ----

    def _check_mandatory_jump(self, board: Board, detail: MoveDetail,
                              turn: TurnIndex) -> Optional[Rejection]:
        if detail.is_jump or not self.generator.captures_mandatory:
            return None
        jumpers = self.generator.jumpers(board, turn)
        if jumpers:
            return Rejection(RejectionReason.MANDATORY_JUMP_IGNORED,
                             "Simple move while a jump is available",
                             {"piece": detail.piece_index, "jumpers": jumpers})
        return None

    def _check_legality(self, board: Board, detail: MoveDetail,
                        turn: TurnIndex) -> Optional[Rejection]:
        piece = detail.piece_index
        if detail.is_jump:
            jump = Jump(*detail.hops)
            legal = self.generator.jump_moves(board, piece, turn)
            if jump not in legal:
                return Rejection(RejectionReason.ILLEGAL_JUMP, "Jump is not legal",
                                 {"piece": piece, "jump": tuple(jump), "legal": [tuple(j) for j in legal]})
            return None
        destination = detail.hops[0]
        legal_steps = self.generator.simple_moves(board, piece, turn)
        if destination not in legal_steps:
            return Rejection(RejectionReason.ILLEGAL_SIMPLE_MOVE, "Simple move is not legal",
                             {"piece": piece, "destination": destination, "legal": legal_steps})
        return None

    def _check_written_cells(self, board: Board, detail: MoveDetail) -> Optional[Rejection]:
        """Source and captured cells must be cleared and the landing cell hold the mover's colour.

        The landing kind is taken as written: promotion is left to the platform,
        so a man may arrive as a crown and a crown as a man.
        """
        if not self.config.rules.strict_cell_values:
            return None
        mover = board[detail.piece_index]
        *cleared, (landing, landing_token) = detail.written
        for index, token in cleared:
            if token != EMPTY_TOKEN:
                return Rejection(RejectionReason.ILLEGAL_MOVE_SHAPE, "Vacated cell not set to EMPTY",
                                 {"index": index, "token": token})
        placed = cell_from_token(landing_token)
        if placed is None or mover is None or placed.color is not mover.color:
            return Rejection(RejectionReason.ILLEGAL_MOVE_SHAPE, "Landing cell does not hold the moving piece",
                             {"index": landing, "token": landing_token})
        return None

    def _check_turn_transition(self, board_after: Board, detail: MoveDetail,
                               turn_before: TurnIndex, turn_after: Any) -> Optional[Rejection]:
        if detail.is_jump and self.generator.jump_moves(board_after, detail.hops[-1], turn_before):
            expected = turn_before
        else:
            expected = 1 - turn_before
        if not is_valid_turn(turn_after) or turn_after != expected:
            return Rejection(RejectionReason.ILLEGAL_TURN_TRANSITION, "Wrong turn index after move",
                             {"expected": expected, "claimed": turn_after})
        return None

    def _check_winner(self, next_state: NextState, detail: MoveDetail) -> Optional[Rejection]:
        if detail.winner is None:
            return None
        expected = WHITE_WINS if detail.winner is Color.WHITE else BLACK_WINS
        if next_state.end_match_score != expected:
            return Rejection(RejectionReason.ILLEGAL_WINNER_CLAIM, "Claimed winner does not match the board",
                             {"claimed": detail.winner.name, "score": next_state.end_match_score})
        return None

    # ---- reporting ----

    def _reject(self, reason: RejectionReason, message: str, **context: Any) -> ValidationResult:
        return self._report(Rejection(reason, message, context))

    def _report(self, rejection: Rejection) -> ValidationResult:
        logger.warning("Rejected move: %s (%s) %s",
                       rejection.reason.value, rejection.message, rejection.context)
        if self.sink is not None:
            self.sink.report(rejection)
        return ValidationResult(rejection)


def is_move_ok(match: Union[MoveSubmission, Mapping[str, Any]],
               config: Optional[RefereeConfig] = None,
               sink: Optional[ReportSink] = None) -> ValidationResult:
    """Validate a platform match payload (stateBeforeMove, turnIndexBeforeMove,
    turnIndexAfterMove, move)."""
    if not isinstance(match, MoveSubmission):
        try:
            match = MoveSubmission.model_validate(match)
        except ValidationError as e:
            raise InvalidBoardError("Match payload has no usable stateBeforeMove",
                                    context={"errors": e.error_count()}) from e
    return MoveValidator(config, sink).validate(
        match.state_before, match.move, match.turn_index_before, match.turn_index_after)


def validate_move(state_before: Mapping[str, str], move: Any, turn_before: TurnIndex,
                  turn_after: Any = None) -> ValidationResult:
    """Convenience wrapper using the global configuration."""
    return MoveValidator().validate(state_before, move, turn_before, turn_after)
