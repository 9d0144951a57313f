"""
Type definitions and protocols for the checkers referee.

This module provides:
- Enums for piece color and kind
- The immutable Piece value object and its protocol token encoding
- Type aliases for boards, moves and the external protocol
- Protocol definitions for collaborator interfaces
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Dict, List, NamedTuple, Optional, Protocol, Tuple


class Color(IntEnum):
    """Piece color. The value is the turn index on which that color moves."""

    WHITE = 0
    BLACK = 1

    @property
    def opponent(self) -> "Color":
        return Color.BLACK if self is Color.WHITE else Color.WHITE

    @property
    def letter(self) -> str:
        return "W" if self is Color.WHITE else "B"


class Kind(Enum):
    MAN = "MAN"
    CROWN = "CRO"


class Direction(IntEnum):
    """Vertical direction of travel; the value is the row delta."""

    UP = -1
    DOWN = 1


EMPTY_TOKEN = "EMPTY"

_TOKEN_MAP: Dict[str, Tuple[Color, Kind]] = {
    "WMAN": (Color.WHITE, Kind.MAN),
    "WCRO": (Color.WHITE, Kind.CROWN),
    "BMAN": (Color.BLACK, Kind.MAN),
    "BCRO": (Color.BLACK, Kind.CROWN),
}


@dataclass(frozen=True)
class Piece:
    """Immutable value object for a live piece on the board."""

    color: Color
    kind: Kind = Kind.MAN

    @property
    def is_crown(self) -> bool:
        return self.kind is Kind.CROWN

    @property
    def forward(self) -> Direction:
        """Direction a man of this color advances in. White starts at the bottom."""
        return Direction.UP if self.color is Color.WHITE else Direction.DOWN

    @property
    def token(self) -> str:
        """Protocol token, e.g. 'WMAN' or 'BCRO'."""
        return self.color.letter + self.kind.value

    @classmethod
    def from_token(cls, token: str) -> "Piece":
        """Create a piece from its protocol token. Raises ValueError on anything else."""
        try:
            color, kind = _TOKEN_MAP[token]
        except (KeyError, TypeError):
            raise ValueError(f"Invalid piece token: {token!r}") from None
        return cls(color, kind)

    def __str__(self) -> str:
        return self.token


# Shorthand constructors used throughout tests and setup
WHITE_MAN = Piece(Color.WHITE, Kind.MAN)
WHITE_CROWN = Piece(Color.WHITE, Kind.CROWN)
BLACK_MAN = Piece(Color.BLACK, Kind.MAN)
BLACK_CROWN = Piece(Color.BLACK, Kind.CROWN)


class Jump(NamedTuple):
    """A single capturing hop: the jumped cell and the landing cell."""

    captured: int
    landing: int


# Basic type aliases
Cell = Optional[Piece]  # None is an empty cell
Board = List[Cell]  # 32 cells, index-addressed
CellIndex = int  # 0..31
TurnIndex = int  # 0 (White) or 1 (Black)
EndScore = Tuple[int, int]  # (white, black)

# External protocol types
ProtocolState = Dict[str, str]  # {"S0": "BMAN", ..., "S31": "WMAN"}
RawOperation = Dict[str, Any]  # {"set": {...}} | {"setTurn": n} | {"endMatch": {...}}
RawMove = List[RawOperation]


def token_of(cell: Cell) -> str:
    """Protocol token for a cell state."""
    return EMPTY_TOKEN if cell is None else cell.token


def cell_from_token(token: str) -> Cell:
    """Parse a protocol token into a cell state. Raises ValueError on unknown tokens."""
    if token == EMPTY_TOKEN:
        return None
    return Piece.from_token(token)


class ReportSink(Protocol):
    """Collaborator that receives rejection reports (e.g. an abuse notifier)."""

    def report(self, rejection: Any) -> None:
        """Deliver a rejection report."""
        ...


def is_valid_turn(turn: Any) -> bool:
    """Check if a value is a valid turn index."""
    return isinstance(turn, int) and not isinstance(turn, bool) and turn in (0, 1)


class LegalMove(NamedTuple):
    """One legal option for the side to move, as listed by MoveGenerator.legal_moves."""

    source: int
    destination: int
    captured: Optional[int] = None

    @property
    def is_jump(self) -> bool:
        return self.captured is not None
