"""
Board geometry and conversion between the platform's sparse state and the
dense 32-cell board.

Game board for reference (row parity decides diagonal offsets)::

    EVEN | 00 | ** | 01 | ** | 02 | ** | 03 | ** |
    ODD  | ** | 04 | ** | 05 | ** | 06 | ** | 07 |
    EVEN | 08 | ** | 09 | ** | 10 | ** | 11 | ** |
    ODD  | ** | 12 | ** | 13 | ** | 14 | ** | 15 |
    EVEN | 16 | ** | 17 | ** | 18 | ** | 19 | ** |
    ODD  | ** | 20 | ** | 21 | ** | 22 | ** | 23 |
    EVEN | 24 | ** | 25 | ** | 26 | ** | 27 | ** |
    ODD  | ** | 28 | ** | 29 | ** | 30 | ** | 31 |
"""
from __future__ import annotations

from typing import Any, List, Mapping, Tuple

from checkers_referee.errors import InvalidBoardError
from checkers_referee.types import (
    BLACK_MAN,
    WHITE_MAN,
    Board,
    Cell,
    CellIndex,
    Color,
    Piece,
    ProtocolState,
    cell_from_token,
    token_of,
)

# ============================
# Geometry
# ============================
ROW: int = 8
COLUMN: int = 4
CELL_COUNT: int = ROW * COLUMN

CELL_KEY_PREFIX = "S"

_UNSET = object()


def row_of(index: CellIndex) -> int:
    return index // COLUMN


def column_of(index: CellIndex) -> int:
    """Position of the cell within its row of playable cells (0..3)."""
    return index % COLUMN


def is_even_row(index: CellIndex) -> bool:
    return row_of(index) % 2 == 0


def is_legal_index(index: Any) -> bool:
    """Check that a value is an integral cell index in [0, 31]."""
    if isinstance(index, bool) or not isinstance(index, int):
        return False
    return 0 <= index < CELL_COUNT


def cell_key(index: CellIndex) -> str:
    """Protocol key for a cell, e.g. 12 -> 'S12'."""
    return f"{CELL_KEY_PREFIX}{index}"


def parse_cell_key(key: str) -> int:
    """Cell index from a protocol key. A non-numeric suffix raises ValueError."""
    return int(key[len(CELL_KEY_PREFIX):])


# ============================
# Sparse <-> dense conversion
# ============================
def to_array(protocol_state: Mapping[str, str]) -> Board:
    """Convert the platform state mapping into a dense 32-cell board."""
    cells: List[Any] = [_UNSET] * CELL_COUNT
    for key, token in protocol_state.items():
        try:
            index = parse_cell_key(key) if key.startswith(CELL_KEY_PREFIX) else -1
        except ValueError:
            index = -1
        if not 0 <= index < CELL_COUNT:
            raise InvalidBoardError("State names a cell off the board", context={"key": key})
        try:
            cells[index] = cell_from_token(token)
        except ValueError:
            raise InvalidBoardError("Cell holds neither EMPTY nor a piece",
                                    context={"key": key, "token": token}) from None
    missing = [i for i, cell in enumerate(cells) if cell is _UNSET]
    if missing:
        raise InvalidBoardError("State does not describe every cell",
                                context={"missing": missing})
    return cells


def to_protocol(board: Board) -> ProtocolState:
    """Convert a dense board back into the platform state mapping."""
    return {cell_key(i): token_of(cell) for i, cell in enumerate(board)}


# ============================
# Board setup and utilities
# ============================
def empty_board() -> Board:
    return [None] * CELL_COUNT


def initial_board() -> Board:
    """Starting layout: Black men on rows 0..2, empty rows 3..4, White men on rows 5..7."""
    board = empty_board()
    for i in range(CELL_COUNT):
        r = row_of(i)
        if r < ROW // 2 - 1:
            board[i] = BLACK_MAN
        elif r > ROW // 2:
            board[i] = WHITE_MAN
    return board


def count_pieces(board: Board) -> Tuple[int, int]:
    """Count live pieces of each color.

    Returns:
        Tuple of (white_pieces, black_pieces)
    """
    white = sum(1 for cell in board if cell is not None and cell.color is Color.WHITE)
    black = sum(1 for cell in board if cell is not None and cell.color is Color.BLACK)
    return white, black


def rotate_board(board: Board, swap_colors: bool = True) -> Board:
    """Turn the board 180 degrees (cell i -> 31 - i).

    With swap_colors the sides trade places as well, so the position seen
    from Black's chair is returned as if White were to play it.
    """
    rotated: Board = empty_board()
    for i, cell in enumerate(board):
        if cell is not None and swap_colors:
            cell = Piece(cell.color.opponent, cell.kind)
        rotated[CELL_COUNT - 1 - i] = cell
    return rotated


def board_to_str(board: Board) -> str:
    """Render the board as eight text rows for debug logs."""
    lines: List[str] = []
    for r in range(ROW):
        tokens = [_short(board[r * COLUMN + c]) for c in range(COLUMN)]
        if r % 2 == 0:
            lines.append(" ".join(f"{t} .." for t in tokens))
        else:
            lines.append(" ".join(f".. {t}" for t in tokens))
    return "\n".join(lines)


def _short(cell: Cell) -> str:
    if cell is None:
        return "--"
    letter = cell.color.letter
    return letter + ("K" if cell.is_crown else letter.lower())
