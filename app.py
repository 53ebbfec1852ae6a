"""
Xiangqi Board Recognizer: Streamlit Web App

Run with: uv run streamlit run app.py
"""

from __future__ import annotations

import asyncio
from typing import cast

import streamlit as st
from dotenv import load_dotenv
from loguru import logger

from src.xiangqi_vision import Position, Side, Square
from src.xiangqi_vision.imaging import sniff_mime_type
from src.xiangqi_vision.oracle import GeminiOracleClient, OracleConfig, OracleErrorKind
from src.xiangqi_vision.pieces import PIECE_SYMBOLS
from src.xiangqi_vision.position import FILES, RANKS, in_palace
from src.xiangqi_vision.workflow import (
    Outcome,
    RecognitionWorkflow,
    RetryPolicy,
    Snapshot,
    WorkflowState,
)

# ── Visual constants ───────────────────────────────────────────────────────────
WOOD = "#F0C070"
WOOD_PALACE = "#E0A840"
WOOD_HIGHLIGHT = "#FF9F80"
BORDER_COLOR = "#8B6914"
RED_FG = "#CC0000"
BLACK_FG = "#111111"

ORACLE_MESSAGES: dict[OracleErrorKind, str] = {
    OracleErrorKind.AUTH_FAILURE: (
        "The vision service rejected the API key. "
        "Set GEMINI_API_KEY in the environment or a .env file and restart."
    ),
    OracleErrorKind.TRANSIENT: "The vision service is unreachable right now. Please try again.",
    OracleErrorKind.MALFORMED: "The vision service returned an unusable answer.",
}

# ── Session state ──────────────────────────────────────────────────────────────


def init_state() -> None:
    if "config" not in st.session_state:
        load_dotenv()
        st.session_state.config = OracleConfig.from_env()
    if "workflow" not in st.session_state:
        config = cast(OracleConfig, st.session_state.config)
        st.session_state.workflow = RecognitionWorkflow(GeminiOracleClient(config), RetryPolicy())
    if "upload_key" not in st.session_state:
        st.session_state.upload_key = None


# ── HTML board table ───────────────────────────────────────────────────────────


def is_palace(sq: Square) -> bool:
    return in_palace(sq, Side.RED) or in_palace(sq, Side.BLACK)


def _piece_circle(position: Position, sq: Square, bg: str) -> str:
    piece = position.get(sq)
    if piece is None:
        return f"<span style='color:{BORDER_COLOR};font-size:16px;'>·</span>"
    sym = PIECE_SYMBOLS[(piece.side, piece.kind)]
    fg = RED_FG if piece.side == Side.RED else BLACK_FG
    return (
        f"<div style='width:44px;height:44px;border-radius:50%;"
        f"border:2.5px solid {fg};background:{bg};"
        f"display:inline-flex;align-items:center;justify-content:center;"
        f"font-size:21px;font-weight:bold;color:{fg};line-height:1;'>{sym}</div>"
    )


def board_to_html(position: Position, highlight: set[Square] | None = None) -> str:
    """Return a <table> HTML string for the board; ``highlight`` marks offending squares."""
    highlight = highlight or set()
    hdr = (
        "width:56px;height:22px;text-align:center;font-size:11px;color:#6B4C11;font-weight:normal;"
    )
    rank_s = "width:26px;text-align:center;font-size:11px;color:#6B4C11;"
    table_s = (
        f"border-collapse:collapse;background:{WOOD};"
        "font-family:'Noto Serif SC','Noto Serif CJK SC',STSong,serif;margin:0 auto;"
    )

    rows: list[str] = []
    col_hdrs = "".join(f"<th style='{hdr}'>{ch}</th>" for ch in "abcdefghi")
    rows.append(f"<tr><th style='width:26px;'></th>{col_hdrs}<th style='width:26px;'></th></tr>")

    for rank in range(RANKS - 1, -1, -1):
        cells = [f"<td style='{rank_s}'>{rank}</td>"]
        for file in range(FILES):
            sq = Square(file, rank)
            if sq in highlight:
                bg = WOOD_HIGHLIGHT
            elif is_palace(sq):
                bg = WOOD_PALACE
            else:
                bg = WOOD
            td_s = (
                f"width:56px;height:54px;text-align:center;vertical-align:middle;"
                f"border:1px solid {BORDER_COLOR};background:{bg};"
            )
            cells.append(f"<td style='{td_s}'>{_piece_circle(position, sq, bg)}</td>")
        cells.append(f"<td style='{rank_s}'>{rank}</td>")
        rows.append(f"<tr>{''.join(cells)}</tr>")

        if rank == 5:
            river = (
                f"<td colspan='9' style='height:26px;background:{WOOD};"
                f"text-align:center;font-size:13px;color:{BORDER_COLOR};"
                f"letter-spacing:6px;"
                f"border-left:1px solid {BORDER_COLOR};border-right:1px solid {BORDER_COLOR};'>"
                "楚河&nbsp;&nbsp;&nbsp;&nbsp;漢界</td>"
            )
            rows.append(f"<tr><td></td>{river}<td></td></tr>")

    return f"<table style=\"{table_s}\">{''.join(rows)}</table>"


# ── Result rendering ───────────────────────────────────────────────────────────


def render_result(snapshot: Snapshot) -> None:
    if snapshot.state == WorkflowState.SUCCEEDED and snapshot.position is not None:
        st.success("Position recognized.")
        st.code(snapshot.notation or "", language=None)
        st.markdown(board_to_html(snapshot.position), unsafe_allow_html=True)
        if snapshot.explanation:
            st.caption(snapshot.explanation)
        return

    if snapshot.state != WorkflowState.FAILED:
        return

    if snapshot.error_class == Outcome.ILLEGAL_POSITION and snapshot.position is not None:
        st.error(f"The recognized position is illegal ({len(snapshot.violations)} problem(s)).")
        for v in snapshot.violations:
            st.markdown(f"- **{v.rule.value.replace('_', ' ')}**: {v.detail}")
        highlight = {sq for v in snapshot.violations for sq in v.squares}
        st.markdown(board_to_html(snapshot.position, highlight), unsafe_allow_html=True)
        if snapshot.explanation:
            st.caption(snapshot.explanation)
    elif snapshot.error_class == Outcome.PARSE_FAILED:
        st.warning("The vision service's answer could not be read as a board. Try again.")
        st.caption(snapshot.detail)
    elif snapshot.oracle_error is not None:
        st.error(ORACLE_MESSAGES[snapshot.oracle_error])
        st.caption(snapshot.detail)


# ── Main app ──────────────────────────────────────────────────────────────────


def main() -> None:
    st.set_page_config(page_title="Xiangqi Board Recognizer", page_icon="♟", layout="centered")
    init_state()
    config = cast(OracleConfig, st.session_state.config)
    workflow = cast(RecognitionWorkflow, st.session_state.workflow)

    st.title("♟ Xiangqi Board Recognizer")
    st.caption(f"API key: {'✅ loaded' if config.api_key else '❌ missing'} · model: {config.model}")

    uploaded = st.file_uploader("Board photograph", type=["jpg", "jpeg", "png", "webp"])
    if uploaded is None:
        if st.session_state.upload_key is not None:
            workflow.reset()
            st.session_state.upload_key = None
        return

    data = uploaded.getvalue()
    upload_key = (uploaded.name, len(data))
    if upload_key != st.session_state.upload_key:
        # New image: the previous result no longer applies.
        workflow.reset()
        st.session_state.upload_key = upload_key
        logger.info("Image selected | name={} | bytes={}", uploaded.name, len(data))

    st.image(data, use_container_width=True)

    busy = workflow.snapshot.state == WorkflowState.REQUESTING
    label = "Analyze" if workflow.snapshot.state == WorkflowState.IDLE else "Analyze again"
    if st.button(label, type="primary", disabled=busy, use_container_width=True):
        with st.spinner("Reading the board…"):
            asyncio.run(workflow.recognize(data, sniff_mime_type(data)))

    render_result(workflow.snapshot)


if __name__ == "__main__":
    main()
