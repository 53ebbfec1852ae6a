"""
Xiangqi piece definitions.
Pieces: 將/帥(General), 士/仕(Advisor), 象/相(Elephant), 馬/傌(Horse),
        車/俥(Chariot), 炮/砲(Cannon), 卒/兵(Soldier)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class Side(IntEnum):
    RED = 1
    BLACK = -1


class PieceKind(IntEnum):
    GENERAL = 1  # 將/帥
    ADVISOR = 2  # 士/仕
    ELEPHANT = 3  # 象/相
    HORSE = 4  # 馬/傌
    CHARIOT = 5  # 車/俥
    CANNON = 6  # 炮/砲
    SOLDIER = 7  # 卒/兵


@dataclass(frozen=True)
class Piece:
    kind: PieceKind
    side: Side

    @property
    def value(self) -> int:
        """Signed grid encoding: RED positive, BLACK negative."""
        return int(self.side) * int(self.kind)


# Notation letters; uppercase = RED, lowercase = BLACK.
KIND_LETTERS: dict[PieceKind, str] = {
    PieceKind.GENERAL: "K",
    PieceKind.ADVISOR: "A",
    PieceKind.ELEPHANT: "E",
    PieceKind.HORSE: "H",
    PieceKind.CHARIOT: "R",
    PieceKind.CANNON: "C",
    PieceKind.SOLDIER: "P",
}

LETTER_KINDS: dict[str, PieceKind] = {v: k for k, v in KIND_LETTERS.items()}

# Per-side maximum counts. The GENERAL is required exactly once.
MAX_COUNTS: dict[PieceKind, int] = {
    PieceKind.GENERAL: 1,
    PieceKind.ADVISOR: 2,
    PieceKind.ELEPHANT: 2,
    PieceKind.HORSE: 2,
    PieceKind.CHARIOT: 2,
    PieceKind.CANNON: 2,
    PieceKind.SOLDIER: 5,
}

PIECE_SYMBOLS = {
    (Side.RED, PieceKind.GENERAL): "帥",
    (Side.RED, PieceKind.ADVISOR): "仕",
    (Side.RED, PieceKind.ELEPHANT): "相",
    (Side.RED, PieceKind.HORSE): "傌",
    (Side.RED, PieceKind.CHARIOT): "俥",
    (Side.RED, PieceKind.CANNON): "砲",
    (Side.RED, PieceKind.SOLDIER): "兵",
    (Side.BLACK, PieceKind.GENERAL): "將",
    (Side.BLACK, PieceKind.ADVISOR): "士",
    (Side.BLACK, PieceKind.ELEPHANT): "象",
    (Side.BLACK, PieceKind.HORSE): "馬",
    (Side.BLACK, PieceKind.CHARIOT): "車",
    (Side.BLACK, PieceKind.CANNON): "炮",
    (Side.BLACK, PieceKind.SOLDIER): "卒",
}


def piece_letter(piece: Piece) -> str:
    letter = KIND_LETTERS[piece.kind]
    return letter if piece.side == Side.RED else letter.lower()


def letter_piece(letter: str) -> Piece | None:
    """Map a notation letter to a piece; None for anything outside the alphabet."""
    kind = LETTER_KINDS.get(letter.upper())
    if kind is None or len(letter) != 1:
        return None
    return Piece(kind, Side.RED if letter.isupper() else Side.BLACK)
