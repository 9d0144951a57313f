"""
Codec for the match platform's wire format.

A state snapshot is a flat mapping ``{"S0": "BMAN", ..., "S31": "WMAN"}``.
A move is an ordered list of operations, each one of::

    {"set": {"S20": "EMPTY"}}
    {"setTurn": 1}
    {"endMatch": {"endMatchScores": [1, 0]}}

The first ``set`` of a move clears the moving piece's source cell; every
following ``set`` names one hop cell (the landing cell of a simple move, or
the captured cell then the landing cell of a jump).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt

from checkers_referee.board import CELL_COUNT, CELL_KEY_PREFIX, COLUMN, ROW, cell_key, parse_cell_key
from checkers_referee.types import (
    BLACK_MAN,
    EMPTY_TOKEN,
    WHITE_MAN,
    Color,
    ProtocolState,
    RawMove,
    TurnIndex,
)


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid", frozen=True)

    def to_raw(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class SetOperation(_WireModel):
    """Assign tokens to a subset of cells."""

    cells: Dict[str, str] = Field(alias="set")


class SetTurnOperation(_WireModel):
    """Hand the move to the given turn index."""

    turn_index: StrictInt = Field(alias="setTurn")


class EndMatchScores(_WireModel):
    end_match_scores: Tuple[StrictInt, StrictInt] = Field(alias="endMatchScores")


class EndMatchOperation(_WireModel):
    """Declare the match over with a (white, black) score pair."""

    end_match: EndMatchScores = Field(alias="endMatch")

    @property
    def scores(self) -> Tuple[int, int]:
        return self.end_match.end_match_scores

    @property
    def winner(self) -> Color:
        """Black when White scored zero, otherwise White."""
        return Color.BLACK if self.scores[0] == 0 else Color.WHITE


Operation = Union[SetOperation, SetTurnOperation, EndMatchOperation]

_OPERATION_TYPES = {
    "set": SetOperation,
    "setTurn": SetTurnOperation,
    "endMatch": EndMatchOperation,
}


def parse_operation(raw: Any) -> Operation:
    """Parse one raw operation. Raises ValueError (pydantic's included) when malformed."""
    if not isinstance(raw, Mapping) or len(raw) != 1:
        raise ValueError(f"Operation must be a single-key mapping, got {raw!r}")
    tag = next(iter(raw))
    try:
        model = _OPERATION_TYPES[tag]
    except KeyError:
        raise ValueError(f"Unknown operation {tag!r}") from None
    return model.model_validate(raw)


def parse_operations(raw_move: Any) -> List[Operation]:
    """Parse a raw move (list of operations)."""
    if not isinstance(raw_move, (list, tuple)):
        raise ValueError("Move must be a list of operations")
    return [parse_operation(op) for op in raw_move]


def _index_of(key: str) -> Optional[int]:
    """Cell index named by a key, or None when the key is not of the form S<int>."""
    if not key.startswith(CELL_KEY_PREFIX):
        return None
    try:
        return parse_cell_key(key)
    except ValueError:
        return None


@dataclass
class MoveDetail:
    """A move decoded into the moving piece, its hop cells and its claims."""

    piece_index: Optional[int]
    hops: List[Optional[int]] = field(default_factory=list)
    set_turn: Optional[TurnIndex] = None
    winner: Optional[Color] = None
    # Tokens written by each set operation, in operation order
    written: List[Tuple[Optional[int], str]] = field(default_factory=list)

    @property
    def indices(self) -> List[Optional[int]]:
        return [self.piece_index, *self.hops]

    @property
    def is_jump(self) -> bool:
        return len(self.hops) == 2


def decode_move(operations: List[Operation]) -> MoveDetail:
    """Decode parsed operations into a MoveDetail.

    Raises ValueError when there is no set operation or a set operation
    names other than exactly one cell.
    """
    written: List[Tuple[Optional[int], str]] = []
    set_turn: Optional[int] = None
    winner: Optional[Color] = None
    for op in operations:
        if isinstance(op, SetTurnOperation):
            set_turn = op.turn_index
        elif isinstance(op, EndMatchOperation):
            winner = op.winner
        else:
            if len(op.cells) != 1:
                raise ValueError(f"Set operation must name exactly one cell, got {len(op.cells)}")
            (key, token), = op.cells.items()
            written.append((_index_of(key), token))
    if not written:
        raise ValueError("Move has no set operation")
    return MoveDetail(
        piece_index=written[0][0],
        hops=[index for index, _ in written[1:]],
        set_turn=set_turn,
        winner=winner,
        written=written,
    )


def apply_set_operations(state: Mapping[str, str], operations: List[Operation]) -> ProtocolState:
    """Return a copy of state with every set operation's assignments applied."""
    next_state: ProtocolState = dict(state)
    for op in operations:
        if isinstance(op, SetOperation):
            for key, token in op.cells.items():
                next_state[cell_key(parse_cell_key(key))] = token
    return next_state


class MoveSubmission(BaseModel):
    """A claimed move as handed over by the match platform."""

    model_config = ConfigDict(populate_by_name=True)

    # Cells and turns stay unparsed so the validator judges them the same way
    # whichever route they arrive by
    state_before: Dict[str, Any] = Field(alias="stateBeforeMove")
    turn_index_before: Any = Field(default=None, alias="turnIndexBeforeMove")
    turn_index_after: Any = Field(default=None, alias="turnIndexAfterMove")
    move: Any = None


# ============================
# Setup
# ============================
def initial_operations() -> RawMove:
    """Operations that start a match: White to move, three rows of men per side."""
    operations: RawMove = [{"setTurn": 0}]
    black_end = (ROW // 2 - 1) * COLUMN
    white_start = (ROW // 2 + 1) * COLUMN
    for i in range(CELL_COUNT):
        if i < black_end:
            token = BLACK_MAN.token
        elif i < white_start:
            token = EMPTY_TOKEN
        else:
            token = WHITE_MAN.token
        operations.append({"set": {cell_key(i): token}})
    return operations


def initial_state() -> ProtocolState:
    """The state snapshot produced by initial_operations()."""
    return apply_set_operations({}, parse_operations(initial_operations()))
