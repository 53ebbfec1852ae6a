"""
Board notation codec.

Ten ``/``-separated rows, rank 9 first. Each row lists piece letters
(uppercase RED, lowercase BLACK) with digits 1-9 for runs of empty squares
and must cover exactly 9 files. ``encode`` appends fixed placeholder fields
for side to move and move counters, since a photograph carries no game
history; ``decode`` reads only the board field.
"""

from __future__ import annotations

from .pieces import letter_piece, piece_letter
from .position import FILES, RANKS, Position, Square

PLACEHOLDER_FIELDS = "w - - 0 1"


class DecodeError(Exception):
    """Notation text that does not describe a 9x10 board."""

    def __init__(self, row: int | None, reason: str) -> None:
        self.row = row
        self.reason = reason
        where = "notation" if row is None else f"row {row}"
        super().__init__(f"{where}: {reason}")


def encode_board(position: Position) -> str:
    """Board field only. Off-board pieces are not representable and are skipped."""
    rows: list[str] = []
    for rank in range(RANKS - 1, -1, -1):
        row = ""
        empty = 0
        for file in range(FILES):
            piece = position.get(Square(file, rank))
            if piece is None:
                empty += 1
                continue
            if empty:
                row += str(empty)
                empty = 0
            row += piece_letter(piece)
        if empty:
            row += str(empty)
        rows.append(row)
    return "/".join(rows)


def encode(position: Position) -> str:
    return f"{encode_board(position)} {PLACEHOLDER_FIELDS}"


def decode(text: str) -> Position:
    fields = text.split()
    if not fields:
        raise DecodeError(None, "empty notation")
    rows = fields[0].split("/")
    if len(rows) != RANKS:
        raise DecodeError(None, f"expected {RANKS} rows, got {len(rows)}")

    position = Position()
    for i, row in enumerate(rows):
        rank = RANKS - 1 - i
        file = 0
        for ch in row:
            if ch in "123456789":
                file += int(ch)
            else:
                piece = letter_piece(ch)
                if piece is None:
                    raise DecodeError(i, f"unknown symbol {ch!r}")
                position.set(Square(file, rank), piece)
                file += 1
            if file > FILES:
                raise DecodeError(i, f"row covers more than {FILES} files")
        if file != FILES:
            raise DecodeError(i, f"row covers {file} files, expected {FILES}")
    return position
