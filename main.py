"""
Xiangqi board recognizer: command line
Reads a board photograph, asks the vision oracle for the position and prints
the validated board, or every placement violation found.

Usage: python main.py board.jpg [--model gemini-2.0-flash] [--plain] [--verbose]
       python main.py "data:image/png;base64,..."
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from dataclasses import replace
from pathlib import Path

from colorama import Back, Fore, Style, init
from dotenv import load_dotenv
from loguru import logger

from src.xiangqi_vision import Position, Side, Square
from src.xiangqi_vision.imaging import sniff_mime_type, unwrap_data_url
from src.xiangqi_vision.oracle import GeminiOracleClient, OracleConfig, OracleErrorKind
from src.xiangqi_vision.pieces import PIECE_SYMBOLS
from src.xiangqi_vision.position import FILES, RANKS
from src.xiangqi_vision.workflow import Outcome, RecognitionWorkflow, RetryPolicy, Snapshot

init(autoreset=True)

# ── Color palette ──────────────────────────────────────────────────────────────
RED_PIECE = Fore.RED + Style.BRIGHT
BLACK_PIECE = Fore.CYAN + Style.BRIGHT
BOARD_FG = Fore.WHITE
DIM = Style.DIM
GOLD = Fore.YELLOW + Style.BRIGHT
RESET = Style.RESET_ALL


def colored_board(position: Position, marked: set[Square] | None = None) -> str:
    """Return a colored board string; ``marked`` squares are highlighted."""
    marked = marked or set()
    lines = []
    lines.append(BOARD_FG + "   a b c d e f g h i" + RESET)
    lines.append(BOARD_FG + "  ╔═══════════════════╗" + RESET)
    for rank in range(RANKS - 1, -1, -1):
        row_str = BOARD_FG + f"{rank} ║" + RESET
        for file in range(FILES):
            sq = Square(file, rank)
            piece = position.get(sq)
            if piece is None:
                row_str += DIM + " ·" + RESET
                continue
            sym = PIECE_SYMBOLS[(piece.side, piece.kind)]
            color_code = RED_PIECE if piece.side == Side.RED else BLACK_PIECE
            if sq in marked:
                color_code += Back.YELLOW
            row_str += " " + color_code + sym + RESET
        row_str += BOARD_FG + " ║" + RESET
        lines.append(row_str)
    lines.append(BOARD_FG + "  ╚═══════════════════╝" + RESET)
    return "\n".join(lines)


ORACLE_MESSAGES = {
    OracleErrorKind.AUTH_FAILURE: "The vision service rejected the credentials. "
    "Check GEMINI_API_KEY in your environment or .env file.",
    OracleErrorKind.TRANSIENT: "The vision service could not be reached. Try again shortly.",
    OracleErrorKind.MALFORMED: "The vision service returned an unusable answer.",
}


def render(position: Position, marked: set[Square] | None = None, plain: bool = False) -> str:
    return position.display() if plain else colored_board(position, marked)


def report(snapshot: Snapshot, plain: bool = False) -> int:
    if snapshot.error_class is None and snapshot.position is not None:
        print(render(snapshot.position, plain=plain))
        print(GOLD + "\n  ★  " + str(snapshot.notation) + RESET)
        if snapshot.explanation:
            print(DIM + f"\n  {snapshot.explanation}" + RESET)
        return 0

    if snapshot.error_class is Outcome.ILLEGAL_POSITION and snapshot.position is not None:
        marked = {sq for v in snapshot.violations for sq in v.squares}
        print(render(snapshot.position, marked, plain))
        print(Fore.RED + f"\nIllegal position: {len(snapshot.violations)} violation(s):" + RESET)
        for v in snapshot.violations:
            squares = ", ".join(str(sq) for sq in v.squares)
            suffix = DIM + f"  ({squares})" + RESET if squares else ""
            print(f"  [{v.rule.value}] {v.detail}" + suffix)
    elif snapshot.error_class is Outcome.PARSE_FAILED:
        print(Fore.RED + "Could not read a board from the vision service's answer." + RESET)
        print(DIM + f"  {snapshot.detail}" + RESET)
    elif snapshot.oracle_error is not None:
        print(Fore.RED + ORACLE_MESSAGES[snapshot.oracle_error] + RESET)
        print(DIM + f"  {snapshot.detail}" + RESET)
    else:
        print(Fore.RED + "Nothing was recognized; is the image file empty?" + RESET)
    return 1


def load_image(source: str) -> tuple[bytes, str, str]:
    """Image bytes, MIME type and a display name from a file path or a data URL."""
    if source.startswith("data:"):
        data, mime_type = unwrap_data_url(source)
        return data, mime_type, "data URL"
    path = Path(source)
    data = path.read_bytes()
    return data, sniff_mime_type(data), path.name


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Recognize a Xiangqi position from a photograph")
    parser.add_argument("image", help="board photograph path (JPEG, PNG, WebP, …) or a data URL")
    parser.add_argument("--model", default=None, help="Gemini model name")
    parser.add_argument("--timeout", type=float, default=30.0, help="seconds per oracle call")
    parser.add_argument("--plain", action="store_true", help="uncolored board output")
    parser.add_argument("--verbose", "-v", action="store_true", help="debug logging")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if args.verbose else "WARNING")

    try:
        image, mime_type, name = load_image(args.image)
    except (OSError, ValueError) as e:
        print(Fore.RED + f"Cannot read image: {e}" + RESET)
        return 2

    load_dotenv()
    config = OracleConfig.from_env()
    if args.model:
        config = replace(config, model=args.model)
    logger.info("Using {}", config)

    workflow = RecognitionWorkflow(GeminiOracleClient(config), RetryPolicy(timeout=args.timeout))
    print(DIM + f"Reading {name} with {config.model}…" + RESET)
    snapshot = asyncio.run(workflow.recognize(image, mime_type))
    return report(snapshot, args.plain)


if __name__ == "__main__":
    sys.exit(main())
