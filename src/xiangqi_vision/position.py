"""
Xiangqi position model.
Board: 9 files x 10 ranks. Rank 9 is the top row of the notation and RED's
back rank; rank 0 is BLACK's back rank.
"""

from __future__ import annotations

from typing import NamedTuple

import numpy as np
from numpy.typing import NDArray

from .pieces import PIECE_SYMBOLS, Piece, PieceKind, Side

FILES = 9
RANKS = 10

# Palace bounds (inclusive)
RED_PALACE_RANKS = (7, 9)
BLACK_PALACE_RANKS = (0, 2)
PALACE_FILES = (3, 5)

# River: ranks 5-9 = RED territory, ranks 0-4 = BLACK territory
RED_SIDE = range(5, 10)
BLACK_SIDE = range(0, 5)


class Square(NamedTuple):
    file: int
    rank: int

    def in_bounds(self) -> bool:
        return 0 <= self.file < FILES and 0 <= self.rank < RANKS

    def __str__(self) -> str:
        if not self.in_bounds():
            return f"({self.file},{self.rank})"
        return f"{'abcdefghi'[self.file]}{self.rank}"


def palace_ranks(side: Side) -> tuple[int, int]:
    return RED_PALACE_RANKS if side == Side.RED else BLACK_PALACE_RANKS


def home_ranks(side: Side) -> range:
    return RED_SIDE if side == Side.RED else BLACK_SIDE


def in_palace(square: Square, side: Side) -> bool:
    r0, r1 = palace_ranks(side)
    return r0 <= square.rank <= r1 and PALACE_FILES[0] <= square.file <= PALACE_FILES[1]


class Position:
    """Mapping from Square to Piece.

    No validation happens here: a position may hold any number of pieces on
    any coordinates, including off-board ones, so a partially read or corrupt
    recognition result can still be represented and reported on.
    """

    def __init__(self) -> None:
        self._pieces: dict[Square, Piece] = {}
        # Side the recognizer declared for a square, when it declared one.
        self._marks: dict[Square, Side] = {}

    @classmethod
    def start(cls) -> Position:
        p = cls()
        back = [
            PieceKind.CHARIOT,
            PieceKind.HORSE,
            PieceKind.ELEPHANT,
            PieceKind.ADVISOR,
            PieceKind.GENERAL,
            PieceKind.ADVISOR,
            PieceKind.ELEPHANT,
            PieceKind.HORSE,
            PieceKind.CHARIOT,
        ]
        for side, back_rank, cannon_rank, soldier_rank in (
            (Side.RED, 9, 7, 6),
            (Side.BLACK, 0, 2, 3),
        ):
            for f, kind in enumerate(back):
                p.set(Square(f, back_rank), Piece(kind, side))
            p.set(Square(1, cannon_rank), Piece(PieceKind.CANNON, side))
            p.set(Square(7, cannon_rank), Piece(PieceKind.CANNON, side))
            for f in range(0, FILES, 2):
                p.set(Square(f, soldier_rank), Piece(PieceKind.SOLDIER, side))
        return p

    def set(self, square: Square, piece: Piece | None) -> None:
        square = Square(*square)
        self._marks.pop(square, None)
        if piece is None:
            self._pieces.pop(square, None)
        else:
            self._pieces[square] = piece

    def get(self, square: Square) -> Piece | None:
        return self._pieces.get(Square(*square))

    def mark_side(self, square: Square, side: Side) -> None:
        """Record the side the recognizer declared for ``square``."""
        self._marks[Square(*square)] = side

    def marked_side(self, square: Square) -> Side | None:
        return self._marks.get(Square(*square))

    def all_pieces(self) -> list[tuple[Square, Piece]]:
        """All placed pieces ordered by rank, then file."""
        return sorted(self._pieces.items(), key=lambda item: (item[0].rank, item[0].file))

    def count(self, side: Side, kind: PieceKind) -> int:
        return sum(1 for p in self._pieces.values() if p.side == side and p.kind == kind)

    def squares_of(self, side: Side, kind: PieceKind) -> list[Square]:
        return [sq for sq, p in self.all_pieces() if p.side == side and p.kind == kind]

    def to_array(self) -> NDArray[np.int8]:
        """Signed 10x9 grid indexed ``[rank, file]``; off-board squares are dropped."""
        grid: NDArray[np.int8] = np.zeros((RANKS, FILES), dtype=np.int8)
        for sq, piece in self._pieces.items():
            if sq.in_bounds():
                grid[sq.rank, sq.file] = piece.value
        return grid

    def __len__(self) -> int:
        return len(self._pieces)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Position):
            return NotImplemented
        return self._pieces == other._pieces

    def __repr__(self) -> str:
        return f"Position({len(self._pieces)} pieces)"

    def display(self) -> str:
        lines = []
        lines.append("   a b c d e f g h i")
        lines.append("  ╔═══════════════════╗")
        for rank in range(RANKS - 1, -1, -1):
            row_str = f"{rank} ║"
            for file in range(FILES):
                piece = self._pieces.get(Square(file, rank))
                if piece is None:
                    row_str += " ·"
                else:
                    row_str += " " + PIECE_SYMBOLS[(piece.side, piece.kind)]
            row_str += " ║"
            lines.append(row_str)
            if rank == 5:
                lines.append("  ║   楚 河   漢 界   ║")
        lines.append("  ╚═══════════════════╝")
        return "\n".join(lines)
