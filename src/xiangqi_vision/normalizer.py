"""
Turns the vision oracle's raw answer into a candidate Position.

The oracle is a generative model, so nothing about its answer is trusted:
the JSON object may be wrapped in a markdown fence or surrounded by prose,
may carry extra fields, and may name the notation field differently from
call to call. Only the recognised notation field (or, failing that, an
explicit piece list) is read; its text must decode as-is, nothing here
guesses at a board.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .notation import DecodeError, decode
from .pieces import Side, letter_piece
from .position import Position, Square

# Keys the oracle has been seen to put the notation under, in priority order.
NOTATION_KEYS = ("fen", "notation", "position", "board")

_SQUARE_RE = re.compile(r"^([a-i])([0-9])$")


class PiecePlacement(BaseModel):
    model_config = ConfigDict(extra="ignore")

    square: str = Field(..., description="File letter a-i followed by rank digit 0-9, e.g. 'e9'")
    piece: str = Field(..., description="Notation letter, uppercase RED, lowercase BLACK")
    side: str | None = Field(None, description="'red' or 'black'")


class OracleReading(BaseModel):
    """Response schema requested from the oracle."""

    model_config = ConfigDict(extra="ignore")

    fen: str | None = Field(
        None, description="Board field: 10 '/'-separated rows, rank 9 (RED back rank) first"
    )
    explanation: str | None = Field(None, description="Short note on the recognition")
    pieces: list[PiecePlacement] | None = Field(None, description="Optional per-piece listing")


# ── Raw payload variants ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class TextPayload:
    text: str


@dataclass(frozen=True)
class StructuredPayload:
    data: dict[str, Any]


@dataclass(frozen=True)
class UnrecognizedPayload:
    value: object


RawPayload = Union[TextPayload, StructuredPayload, UnrecognizedPayload]


def as_raw_payload(value: object) -> RawPayload:
    if isinstance(value, (TextPayload, StructuredPayload, UnrecognizedPayload)):
        return value
    if isinstance(value, (bytes, bytearray)):
        try:
            return TextPayload(bytes(value).decode("utf-8"))
        except UnicodeDecodeError:
            return UnrecognizedPayload(value)
    if isinstance(value, str):
        return TextPayload(value)
    if isinstance(value, BaseModel):
        return StructuredPayload(value.model_dump())
    if isinstance(value, Mapping):
        return StructuredPayload(dict(value))
    return UnrecognizedPayload(value)


# ── Errors ─────────────────────────────────────────────────────────────────────


class NormalizeReason(Enum):
    NOT_STRUCTURED = "not_structured"
    MISSING_NOTATION_FIELD = "missing_notation_field"
    CODEC_FAILURE = "codec_failure"


class NormalizeError(Exception):
    def __init__(
        self,
        reason: NormalizeReason,
        detail: str = "",
        decode_error: DecodeError | None = None,
    ) -> None:
        self.reason = reason
        self.detail = detail
        self.decode_error = decode_error
        super().__init__(f"{reason.value}: {detail}" if detail else reason.value)


@dataclass(frozen=True)
class NormalizedReading:
    position: Position
    explanation: str | None = None


# ── Parsing ────────────────────────────────────────────────────────────────────


def _first_json_object(text: str) -> dict[str, Any] | None:
    """Return the first JSON object embedded anywhere in ``text``."""
    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            obj, _ = decoder.raw_decode(text, start)
        except (json.JSONDecodeError, RecursionError):
            # Nesting too deep for the decoder counts as unparseable here.
            pass
        else:
            if isinstance(obj, dict):
                return obj
        start = text.find("{", start + 1)
    return None


def _structured(raw: RawPayload) -> dict[str, Any]:
    if isinstance(raw, StructuredPayload):
        return raw.data
    if isinstance(raw, TextPayload):
        obj = _first_json_object(raw.text)
        if obj is None:
            raise NormalizeError(NormalizeReason.NOT_STRUCTURED, "no JSON object in response text")
        return obj
    raise NormalizeError(
        NormalizeReason.NOT_STRUCTURED, f"unsupported payload type {type(raw.value).__name__}"
    )


def _canonical_fields(data: dict[str, Any]) -> dict[str, Any]:
    """Move the first non-empty notation alias under ``fen``."""
    fields = {k: v for k, v in data.items() if k not in NOTATION_KEYS}
    if not isinstance(fields.get("explanation"), str):
        fields.pop("explanation", None)
    for key in NOTATION_KEYS:
        val = data.get(key)
        if val is None or (isinstance(val, str) and not val.strip()):
            continue
        fields["fen"] = val
        break
    return fields


def _position_from_pieces(pieces: list[PiecePlacement]) -> Position:
    position = Position()
    for entry in pieces:
        m = _SQUARE_RE.match(entry.square.strip().lower())
        if m is None:
            raise NormalizeError(
                NormalizeReason.NOT_STRUCTURED, f"unreadable square {entry.square!r}"
            )
        square = Square("abcdefghi".index(m.group(1)), int(m.group(2)))
        piece = letter_piece(entry.piece.strip())
        if piece is None:
            raise NormalizeError(NormalizeReason.NOT_STRUCTURED, f"unknown piece {entry.piece!r}")
        if position.get(square) is not None:
            raise NormalizeError(NormalizeReason.NOT_STRUCTURED, f"square {square} listed twice")
        position.set(square, piece)
        if entry.side is not None:
            try:
                position.mark_side(square, Side[entry.side.strip().upper()])
            except KeyError:
                raise NormalizeError(
                    NormalizeReason.NOT_STRUCTURED, f"unknown side {entry.side!r}"
                ) from None
    return position


def normalize_reading(raw: object) -> NormalizedReading:
    data = _structured(as_raw_payload(raw))
    try:
        reading = OracleReading.model_validate(_canonical_fields(data))
    except ValidationError as e:
        raise NormalizeError(NormalizeReason.NOT_STRUCTURED, str(e)) from e

    if reading.fen is not None:
        try:
            position = decode(reading.fen)
        except DecodeError as e:
            raise NormalizeError(NormalizeReason.CODEC_FAILURE, str(e), e) from e
    elif reading.pieces:
        position = _position_from_pieces(reading.pieces)
    else:
        raise NormalizeError(
            NormalizeReason.MISSING_NOTATION_FIELD,
            f"none of {', '.join(NOTATION_KEYS)} present",
        )
    return NormalizedReading(position, reading.explanation)


def normalize(raw: object) -> Position:
    return normalize_reading(raw).position
