"""Tests for the board notation codec."""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import numpy as np
import pytest

from src.xiangqi_vision import DecodeError, Piece, PieceKind, Position, Side, Square, decode, encode

START_BOARD = "RHEAKAEHR/9/1C5C1/P1P1P1P1P/9/9/p1p1p1p1p/1c5c1/9/rheakaehr"


def _random_position(rng: np.random.Generator, n: int) -> Position:
    """Arbitrary, usually illegal, placement of ``n`` pieces."""
    pos = Position()
    for _ in range(n):
        sq = Square(int(rng.integers(0, 9)), int(rng.integers(0, 10)))
        kind = PieceKind(int(rng.integers(1, 8)))
        side = Side.RED if rng.integers(0, 2) else Side.BLACK
        pos.set(sq, Piece(kind, side))
    return pos


def test_encode_start_position() -> None:
    assert encode(Position.start()) == START_BOARD + " w - - 0 1"


def test_encode_empty_board() -> None:
    assert encode(Position()).split()[0] == "/".join(["9"] * 10)


def test_encode_runs_of_empties() -> None:
    pos = Position()
    pos.set(Square(4, 9), Piece(PieceKind.GENERAL, Side.RED))
    pos.set(Square(0, 0), Piece(PieceKind.CHARIOT, Side.BLACK))
    pos.set(Square(8, 0), Piece(PieceKind.CHARIOT, Side.BLACK))
    assert encode(pos).split()[0] == "4K4/9/9/9/9/9/9/9/9/r7r"


def test_decode_start_position() -> None:
    assert decode(START_BOARD) == Position.start()


def test_decode_ignores_trailing_fields() -> None:
    assert decode(START_BOARD + " b - - 12 40") == Position.start()


def test_round_trip_arbitrary_positions() -> None:
    rng = np.random.default_rng(0x5EED)
    for n in (0, 1, 17, 40, 90):
        pos = _random_position(rng, n)
        assert decode(encode(pos)).all_pieces() == pos.all_pieces()


def test_decode_rejects_short_row() -> None:
    with pytest.raises(DecodeError) as exc:
        decode("RHEAKAEHR/9/9/9/9/9/9/9/9/8")
    assert exc.value.row == 9


def test_decode_rejects_long_row() -> None:
    with pytest.raises(DecodeError) as exc:
        decode("RHEAKAEHR1/9/9/9/9/9/9/9/9/9")
    assert exc.value.row == 0


def test_decode_rejects_wrong_row_count() -> None:
    with pytest.raises(DecodeError) as exc:
        decode("/".join(["9"] * 9))
    assert exc.value.row is None


def test_decode_rejects_unknown_letter() -> None:
    with pytest.raises(DecodeError) as exc:
        decode("RNBAKABNR/9/9/9/9/9/9/9/9/9")
    assert exc.value.row == 0
    assert "'N'" in exc.value.reason


def test_decode_rejects_zero_digit() -> None:
    with pytest.raises(DecodeError):
        decode("4K04/9/9/9/9/9/9/9/9/9")


def test_decode_rejects_empty_text() -> None:
    with pytest.raises(DecodeError) as exc:
        decode("   ")
    assert exc.value.row is None


def test_decode_performs_no_legality_checks() -> None:
    pos = decode("KKKKKKKKK/9/9/9/9/9/9/9/9/9")
    assert pos.count(Side.RED, PieceKind.GENERAL) == 9
