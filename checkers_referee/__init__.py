"""Checkers referee: legal-move generation and authoritative move validation.

Usage examples:
    from checkers_referee import initial_state, is_move_ok
    from checkers_referee import MoveGenerator, to_array
"""
from __future__ import annotations

# Board model
from .types import Color, Kind, Piece, Jump, LegalMove, Direction
from .board import (
    CELL_COUNT,
    COLUMN,
    ROW,
    to_array,
    to_protocol,
    initial_board,
    count_pieces,
    is_legal_index,
)

# Move generation
from .moves import MoveGenerator, get_simple_moves, get_jump_moves, legal_moves

# Protocol and state transition
from .protocol import initial_operations, initial_state, parse_operations, MoveSubmission
from .transition import NextState, apply_move, end_match_score

# Validation
from .validator import (
    MoveValidator,
    Rejection,
    RejectionReason,
    ValidationResult,
    is_move_ok,
    validate_move,
)

from .errors import CheckersError, ConfigurationError, InvalidBoardError, InvalidTurnError
