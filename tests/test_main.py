"""Tests for the command-line front end."""

import base64
import io
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from PIL import Image

import main
from src.xiangqi_vision import Outcome, Position, Snapshot, WorkflowState


def _png_bytes() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (4, 4), "white").save(buf, format="PNG")
    return buf.getvalue()


def test_load_image_from_file(tmp_path) -> None:
    png = _png_bytes()
    path = tmp_path / "board.png"
    path.write_bytes(png)
    assert main.load_image(str(path)) == (png, "image/png", "board.png")


def test_load_image_from_data_url() -> None:
    png = _png_bytes()
    url = "data:image/png;base64," + base64.b64encode(png).decode()
    assert main.load_image(url) == (png, "image/png", "data URL")


def test_load_image_rejects_bad_data_url() -> None:
    with pytest.raises(ValueError):
        main.load_image("data:image/png,raw")


def test_missing_file_exits_with_usage_error(tmp_path, capsys) -> None:
    assert main.main([str(tmp_path / "absent.jpg")]) == 2
    assert "Cannot read image" in capsys.readouterr().out


def test_plain_report_uses_glyph_board(capsys) -> None:
    snapshot = Snapshot(
        WorkflowState.SUCCEEDED,
        1,
        position=Position.start(),
        notation="RHEAKAEHR/9/1C5C1/P1P1P1P1P/9/9/p1p1p1p1p/1c5c1/9/rheakaehr w - - 0 1",
    )
    assert main.report(snapshot, plain=True) == 0
    out = capsys.readouterr().out
    assert Position.start().display() in out
    assert "楚 河" in out


def test_failed_report_exit_code(capsys) -> None:
    snapshot = Snapshot(
        WorkflowState.FAILED, 1, error_class=Outcome.PARSE_FAILED, detail="no JSON object"
    )
    assert main.report(snapshot) == 1
    assert "no JSON object" in capsys.readouterr().out
