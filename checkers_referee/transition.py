"""
State transition: apply a move's cell assignments and detect the end of the match.

No legality checking happens here; the validator uses it to compute the state
a claimed move implies.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional

from checkers_referee.board import count_pieces, to_array
from checkers_referee.protocol import (
    EndMatchOperation,
    Operation,
    SetOperation,
    SetTurnOperation,
    apply_set_operations,
    parse_operations,
)
from checkers_referee.types import Board, EndScore, ProtocolState, TurnIndex

logger = logging.getLogger(__name__)

_PARSED = (SetOperation, SetTurnOperation, EndMatchOperation)

WHITE_WINS: EndScore = (1, 0)
BLACK_WINS: EndScore = (0, 1)


@dataclass(frozen=True)
class NextState:
    """The state after a move and, when one side has no pieces left, the end score."""

    next_state: ProtocolState
    end_match_score: Optional[EndScore] = None

    @property
    def board(self) -> Board:
        return to_array(self.next_state)

    @property
    def is_terminal(self) -> bool:
        return self.end_match_score is not None


def end_match_score(board: Board) -> Optional[EndScore]:
    """(1, 0) when only White remains, (0, 1) when only Black remains, else None."""
    white, black = count_pieces(board)
    if white and not black:
        return WHITE_WINS
    if black and not white:
        return BLACK_WINS
    return None


def apply_move(protocol_state: Mapping[str, str], move: Any,
               turn_before_move: TurnIndex) -> NextState:
    """Apply every set operation of move (raw or parsed) to a copy of protocol_state.

    turn_before_move is accepted for interface parity with the platform; the
    resulting cells do not depend on it.
    """
    operations: List[Operation] = _as_operations(move)
    next_state = apply_set_operations(protocol_state, operations)
    score = end_match_score(to_array(next_state))
    if score is not None:
        logger.debug("Move by turn %d ends the match with score %s", turn_before_move, score)
    return NextState(next_state, score)


def _as_operations(move: Any) -> List[Operation]:
    if isinstance(move, (list, tuple)) and move and all(isinstance(op, _PARSED) for op in move):
        return list(move)
    return parse_operations(move)
