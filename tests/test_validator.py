"""Tests for the placement-law validator."""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from src.xiangqi_vision import Piece, PieceKind, Position, Rule, Side, Square, decode, validate

START_BOARD = "RHEAKAEHR/9/1C5C1/P1P1P1P1P/9/9/p1p1p1p1p/1c5c1/9/rheakaehr"


def _generals_only() -> Position:
    """Legal bare position: generals on different files."""
    pos = Position()
    pos.set(Square(3, 9), Piece(PieceKind.GENERAL, Side.RED))
    pos.set(Square(5, 0), Piece(PieceKind.GENERAL, Side.BLACK))
    return pos


def _rules(pos: Position) -> list[Rule]:
    return [v.rule for v in validate(pos)]


def test_start_position_is_legal() -> None:
    assert validate(decode(START_BOARD)) == []
    assert validate(Position.start()) == []


def test_bare_generals_are_legal() -> None:
    assert validate(_generals_only()) == []


def test_third_horse_is_single_cardinality_violation() -> None:
    pos = Position.start()
    pos.set(Square(0, 5), Piece(PieceKind.HORSE, Side.RED))
    violations = validate(pos)
    assert len(violations) == 1
    v = violations[0]
    assert v.rule == Rule.CARDINALITY
    assert "RED HORSE" in v.detail
    assert set(v.squares) == {Square(1, 9), Square(7, 9), Square(0, 5)}


def test_sixth_soldier_exceeds_limit() -> None:
    pos = Position.start()
    pos.set(Square(1, 3), Piece(PieceKind.SOLDIER, Side.BLACK))
    assert _rules(pos) == [Rule.CARDINALITY]


def test_missing_general() -> None:
    pos = _generals_only()
    pos.set(Square(5, 0), None)
    violations = validate(pos)
    assert [v.rule for v in violations] == [Rule.CARDINALITY]
    assert "BLACK GENERAL" in violations[0].detail
    assert violations[0].squares == ()


def test_general_outside_palace() -> None:
    pos = _generals_only()
    pos.set(Square(3, 9), None)
    pos.set(Square(2, 9), Piece(PieceKind.GENERAL, Side.RED))
    violations = validate(pos)
    assert [v.rule for v in violations] == [Rule.PALACE]
    assert violations[0].squares == (Square(2, 9),)


def test_general_in_opponent_palace() -> None:
    pos = _generals_only()
    pos.set(Square(3, 9), None)
    pos.set(Square(3, 1), Piece(PieceKind.GENERAL, Side.RED))
    assert _rules(pos) == [Rule.PALACE]


def test_advisor_outside_palace_reported_once() -> None:
    pos = _generals_only()
    pos.set(Square(4, 5), Piece(PieceKind.ADVISOR, Side.RED))
    assert _rules(pos) == [Rule.PALACE]


def test_advisor_off_diagonal_point() -> None:
    pos = _generals_only()
    pos.set(Square(4, 9), Piece(PieceKind.ADVISOR, Side.RED))
    pos.set(Square(3, 1), Piece(PieceKind.ADVISOR, Side.BLACK))
    violations = validate(pos)
    assert [v.rule for v in violations] == [Rule.ADVISOR_POINTS, Rule.ADVISOR_POINTS]
    assert violations[0].squares == (Square(4, 9),)
    assert violations[1].squares == (Square(3, 1),)


def test_advisor_on_palace_center_is_legal() -> None:
    pos = _generals_only()
    pos.set(Square(4, 8), Piece(PieceKind.ADVISOR, Side.RED))
    pos.set(Square(4, 1), Piece(PieceKind.ADVISOR, Side.BLACK))
    assert validate(pos) == []


def test_elephants_across_river() -> None:
    pos = _generals_only()
    pos.set(Square(2, 4), Piece(PieceKind.ELEPHANT, Side.RED))
    pos.set(Square(2, 5), Piece(PieceKind.ELEPHANT, Side.BLACK))
    pos.set(Square(6, 5), Piece(PieceKind.ELEPHANT, Side.RED))
    violations = validate(pos)
    assert [v.rule for v in violations] == [Rule.RIVER, Rule.RIVER]
    assert violations[0].squares == (Square(2, 4),)
    assert violations[1].squares == (Square(2, 5),)


def test_soldiers_only_need_to_be_on_the_board() -> None:
    pos = _generals_only()
    pos.set(Square(0, 9), Piece(PieceKind.SOLDIER, Side.RED))
    pos.set(Square(8, 0), Piece(PieceKind.SOLDIER, Side.BLACK))
    assert validate(pos) == []


def test_off_board_piece() -> None:
    pos = _generals_only()
    pos.set(Square(9, 3), Piece(PieceKind.CHARIOT, Side.RED))
    violations = validate(pos)
    assert [v.rule for v in violations] == [Rule.BOARD_BOUNDS]
    assert violations[0].squares == (Square(9, 3),)


def test_off_board_general_still_counted() -> None:
    pos = _generals_only()
    pos.set(Square(4, 12), Piece(PieceKind.GENERAL, Side.BLACK))
    assert _rules(pos) == [Rule.CARDINALITY, Rule.BOARD_BOUNDS]


def test_facing_generals_on_open_file() -> None:
    pos = Position()
    pos.set(Square(4, 8), Piece(PieceKind.GENERAL, Side.RED))
    pos.set(Square(4, 1), Piece(PieceKind.GENERAL, Side.BLACK))
    violations = validate(pos)
    assert len(violations) == 1
    assert violations[0].rule == Rule.FACING_GENERALS
    assert set(violations[0].squares) == {Square(4, 8), Square(4, 1)}


def test_blocked_file_removes_facing_violation() -> None:
    pos = Position()
    pos.set(Square(4, 8), Piece(PieceKind.GENERAL, Side.RED))
    pos.set(Square(4, 1), Piece(PieceKind.GENERAL, Side.BLACK))
    pos.set(Square(4, 5), Piece(PieceKind.CANNON, Side.BLACK))
    assert validate(pos) == []


def test_generals_on_different_files_do_not_face() -> None:
    pos = Position()
    pos.set(Square(4, 9), Piece(PieceKind.GENERAL, Side.RED))
    pos.set(Square(3, 0), Piece(PieceKind.GENERAL, Side.BLACK))
    assert validate(pos) == []


def test_side_declared_by_recognizer_must_match() -> None:
    pos = _generals_only()
    pos.mark_side(Square(3, 9), Side.BLACK)
    pos.mark_side(Square(5, 0), Side.BLACK)
    violations = validate(pos)
    assert [v.rule for v in violations] == [Rule.SIDE_CONSISTENCY]
    assert violations[0].squares == (Square(3, 9),)


def test_all_rules_reported_in_fixed_order() -> None:
    pos = Position()
    pos.set(Square(4, 8), Piece(PieceKind.GENERAL, Side.RED))
    pos.set(Square(4, 1), Piece(PieceKind.GENERAL, Side.BLACK))
    pos.mark_side(Square(4, 1), Side.RED)
    pos.set(Square(4, 7), Piece(PieceKind.ADVISOR, Side.RED))
    pos.set(Square(0, 2), Piece(PieceKind.ELEPHANT, Side.RED))
    pos.set(Square(12, 2), Piece(PieceKind.SOLDIER, Side.BLACK))
    for f in (0, 2, 6):
        pos.set(Square(f, 6), Piece(PieceKind.CHARIOT, Side.RED))
    assert _rules(pos) == [
        Rule.CARDINALITY,
        Rule.RIVER,
        Rule.BOARD_BOUNDS,
        Rule.ADVISOR_POINTS,
        Rule.SIDE_CONSISTENCY,
    ]
