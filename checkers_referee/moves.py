from __future__ import annotations

from typing import List, Optional, Sequence

from checkers_referee.board import COLUMN, ROW, column_of, is_even_row, row_of
from checkers_referee.types import (
    Board,
    Cell,
    CellIndex,
    Direction,
    Jump,
    LegalMove,
    TurnIndex,
)

# -----------------------------
# Diagonal neighbours
# -----------------------------


def _diagonal(index: CellIndex, direction: Direction, left: bool) -> Optional[CellIndex]:
    """One diagonal step from index, or None when it leaves the board.

    Playable cells on even rows sit one square left of those on odd rows, so
    the leftmost cell of an even row has no left neighbour and the rightmost
    cell of an odd row has no right neighbour.
    """
    if not 0 <= row_of(index) + direction < ROW:
        return None
    step = direction * COLUMN
    if is_even_row(index):
        if left:
            if column_of(index) == 0:
                return None
            return index + step - 1
        return index + step
    if left:
        return index + step
    if column_of(index) == COLUMN - 1:
        return None
    return index + step + 1


def _step_targets(board: Board, index: CellIndex, direction: Direction) -> List[CellIndex]:
    moves: List[CellIndex] = []
    for left in (True, False):
        target = _diagonal(index, direction, left)
        if target is not None and board[target] is None:
            moves.append(target)
    return moves


def simple_moves_up(board: Board, index: CellIndex) -> List[CellIndex]:
    """Empty cells one diagonal step towards row 0."""
    return _step_targets(board, index, Direction.UP)


def simple_moves_down(board: Board, index: CellIndex) -> List[CellIndex]:
    """Empty cells one diagonal step towards the last row."""
    return _step_targets(board, index, Direction.DOWN)


# -----------------------------
# Jumps
# -----------------------------


def is_valid_jump(own: Cell, opponent: Cell, target: Cell) -> bool:
    """A jump needs a live opponent piece to capture and an empty landing cell."""
    return (own is not None
            and opponent is not None
            and opponent.color is not own.color
            and target is None)


def _jump_targets(board: Board, index: CellIndex, direction: Direction) -> List[Jump]:
    moves: List[Jump] = []
    for left in (True, False):
        captured = _diagonal(index, direction, left)
        if captured is None:
            continue
        landing = _diagonal(captured, direction, left)
        if landing is None:
            continue
        if is_valid_jump(board[index], board[captured], board[landing]):
            moves.append(Jump(captured, landing))
    return moves


def jump_moves_up(board: Board, index: CellIndex) -> List[Jump]:
    """Captures towards row 0 as (captured, landing) pairs."""
    return _jump_targets(board, index, Direction.UP)


def jump_moves_down(board: Board, index: CellIndex) -> List[Jump]:
    """Captures towards the last row as (captured, landing) pairs."""
    return _jump_targets(board, index, Direction.DOWN)


# -----------------------------
# Aggregation by colour, kind and turn
# -----------------------------


def _directions(piece: Cell, turn: TurnIndex) -> Sequence[Direction]:
    """Directions the piece may travel in on this turn; none for the side not to move."""
    if piece is None or piece.color != turn:
        return ()
    if piece.is_crown:
        return (piece.forward, Direction(-piece.forward))
    return (piece.forward,)


class MoveGenerator:
    """Generates legal moves for a given board and turn.

    Simple moves and jumps are always one hop; a capture chain is played as
    successive single jumps by the same piece.
    """

    def __init__(self, captures_mandatory: bool = True) -> None:
        self.captures_mandatory = bool(captures_mandatory)

    def simple_moves(self, board: Board, index: CellIndex, turn: TurnIndex) -> List[CellIndex]:
        moves: List[CellIndex] = []
        for direction in _directions(board[index], turn):
            moves.extend(_step_targets(board, index, direction))
        return moves

    def jump_moves(self, board: Board, index: CellIndex, turn: TurnIndex) -> List[Jump]:
        moves: List[Jump] = []
        for direction in _directions(board[index], turn):
            moves.extend(_jump_targets(board, index, direction))
        return moves

    @staticmethod
    def pieces_to_move(board: Board, turn: TurnIndex) -> List[CellIndex]:
        """Cells holding a piece of the side to move."""
        return [i for i, cell in enumerate(board) if cell is not None and cell.color == turn]

    def jumpers(self, board: Board, turn: TurnIndex) -> List[CellIndex]:
        """Cells of the side to move whose piece has at least one capture."""
        return [i for i in self.pieces_to_move(board, turn) if self.jump_moves(board, i, turn)]

    def has_any_jump(self, board: Board, turn: TurnIndex) -> bool:
        return any(self.jump_moves(board, i, turn) for i in self.pieces_to_move(board, turn))

    def legal_moves(self, board: Board, turn: TurnIndex) -> List[LegalMove]:
        captures: List[LegalMove] = []
        quiets: List[LegalMove] = []
        for i in self.pieces_to_move(board, turn):
            for jump in self.jump_moves(board, i, turn):
                captures.append(LegalMove(i, jump.landing, jump.captured))
            for dest in self.simple_moves(board, i, turn):
                quiets.append(LegalMove(i, dest))
        if captures and self.captures_mandatory:
            return captures
        return captures + quiets


# Convenience functional API

def get_simple_moves(board: Board, index: CellIndex, turn: TurnIndex) -> List[CellIndex]:
    return MoveGenerator().simple_moves(board, index, turn)


def get_jump_moves(board: Board, index: CellIndex, turn: TurnIndex) -> List[Jump]:
    return MoveGenerator().jump_moves(board, index, turn)


def legal_moves(board: Board, turn: TurnIndex, captures_mandatory: bool = True) -> List[LegalMove]:
    return MoveGenerator(captures_mandatory=captures_mandatory).legal_moves(board, turn)

