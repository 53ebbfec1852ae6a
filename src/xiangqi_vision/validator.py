"""
Placement-law checks for a recognized Xiangqi position.

Every rule runs on every call so that one pass reports all problems with a
recognition result. Violations come back grouped in ``Rule`` order; within a
rule RED is reported before BLACK and squares follow rank-then-file order.
Soldiers are only checked for board bounds: a single static position carries
no move history to test their forward-only movement against.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import numpy as np
from loguru import logger

from .pieces import MAX_COUNTS, PieceKind, Side
from .position import Position, Square, home_ranks, in_palace


class Rule(Enum):
    CARDINALITY = "cardinality"
    PALACE = "palace"
    RIVER = "river"
    BOARD_BOUNDS = "board_bounds"
    FACING_GENERALS = "facing_generals"
    ADVISOR_POINTS = "advisor_points"
    SIDE_CONSISTENCY = "side_consistency"


@dataclass(frozen=True)
class ValidationViolation:
    rule: Rule
    detail: str
    squares: tuple[Square, ...] = ()


# The five diagonal-lattice points of each palace.
ADVISOR_POINTS: dict[Side, frozenset[Square]] = {
    Side.RED: frozenset(Square(f, r) for f, r in ((3, 7), (5, 7), (4, 8), (3, 9), (5, 9))),
    Side.BLACK: frozenset(Square(f, r) for f, r in ((3, 0), (5, 0), (4, 1), (3, 2), (5, 2))),
}

_SIDES = (Side.RED, Side.BLACK)


def _name(side: Side, kind: PieceKind) -> str:
    return f"{side.name} {kind.name}"


def _on_board(position: Position, side: Side, kind: PieceKind) -> list[Square]:
    return [sq for sq in position.squares_of(side, kind) if sq.in_bounds()]


def check_cardinality(position: Position) -> list[ValidationViolation]:
    found: list[ValidationViolation] = []
    for side in _SIDES:
        for kind in PieceKind:
            squares = tuple(position.squares_of(side, kind))
            n = len(squares)
            limit = MAX_COUNTS[kind]
            if kind == PieceKind.GENERAL and n != limit:
                found.append(
                    ValidationViolation(
                        Rule.CARDINALITY,
                        f"{_name(side, kind)}: found {n}, expected exactly {limit}",
                        squares,
                    )
                )
            elif n > limit:
                found.append(
                    ValidationViolation(
                        Rule.CARDINALITY,
                        f"{_name(side, kind)}: found {n}, at most {limit} allowed",
                        squares,
                    )
                )
    return found


def check_palace(position: Position) -> list[ValidationViolation]:
    found: list[ValidationViolation] = []
    for side in _SIDES:
        for kind in (PieceKind.GENERAL, PieceKind.ADVISOR):
            for sq in _on_board(position, side, kind):
                if not in_palace(sq, side):
                    found.append(
                        ValidationViolation(
                            Rule.PALACE, f"{_name(side, kind)} on {sq} is outside its palace", (sq,)
                        )
                    )
    return found


def check_river(position: Position) -> list[ValidationViolation]:
    found: list[ValidationViolation] = []
    for side in _SIDES:
        for sq in _on_board(position, side, PieceKind.ELEPHANT):
            if sq.rank not in home_ranks(side):
                found.append(
                    ValidationViolation(
                        Rule.RIVER,
                        f"{_name(side, PieceKind.ELEPHANT)} on {sq} has crossed the river",
                        (sq,),
                    )
                )
    return found


def check_bounds(position: Position) -> list[ValidationViolation]:
    return [
        ValidationViolation(
            Rule.BOARD_BOUNDS, f"{_name(p.side, p.kind)} placed off the board at {sq}", (sq,)
        )
        for sq, p in position.all_pieces()
        if not sq.in_bounds()
    ]


def check_facing_generals(position: Position) -> list[ValidationViolation]:
    found: list[ValidationViolation] = []
    grid = position.to_array()
    for red in _on_board(position, Side.RED, PieceKind.GENERAL):
        for black in _on_board(position, Side.BLACK, PieceKind.GENERAL):
            if red.file != black.file:
                continue
            lo, hi = sorted((red.rank, black.rank))
            # np.any on an empty slice is False: adjacent generals also face.
            if not np.any(grid[lo + 1 : hi, red.file]):
                found.append(
                    ValidationViolation(
                        Rule.FACING_GENERALS,
                        f"generals face each other on an open file ({red} and {black})",
                        (red, black),
                    )
                )
    return found


def check_advisor_points(position: Position) -> list[ValidationViolation]:
    found: list[ValidationViolation] = []
    for side in _SIDES:
        for sq in _on_board(position, side, PieceKind.ADVISOR):
            # Advisors outside the palace are already reported by check_palace.
            if in_palace(sq, side) and sq not in ADVISOR_POINTS[side]:
                found.append(
                    ValidationViolation(
                        Rule.ADVISOR_POINTS,
                        f"{_name(side, PieceKind.ADVISOR)} on {sq} is off the palace diagonals",
                        (sq,),
                    )
                )
    return found


def check_side_consistency(position: Position) -> list[ValidationViolation]:
    found: list[ValidationViolation] = []
    for sq, piece in position.all_pieces():
        declared = position.marked_side(sq)
        if declared is not None and declared != piece.side:
            found.append(
                ValidationViolation(
                    Rule.SIDE_CONSISTENCY,
                    f"{_name(piece.side, piece.kind)} on {sq} was declared {declared.name}",
                    (sq,),
                )
            )
    return found


_CHECKS = (
    check_cardinality,
    check_palace,
    check_river,
    check_bounds,
    check_facing_generals,
    check_advisor_points,
    check_side_consistency,
)


def validate(position: Position) -> list[ValidationViolation]:
    """All placement-law violations of ``position``; empty means legal."""
    violations: list[ValidationViolation] = []
    for check in _CHECKS:
        violations.extend(check(position))
    logger.debug("Validated | pieces={} | violations={}", len(position), len(violations))
    return violations
