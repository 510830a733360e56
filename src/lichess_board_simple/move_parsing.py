"""
Move parsing helpers for typed human input.

Accepts either notation against a given board:
- "uci": long algebraic coordinates (e2e4, e7e8q); the form the server speaks.
- "san": standard algebraic (e4, Nf3, O-O); zero-style castling (0-0) is normalized.
"""
from __future__ import annotations

import chess
import re
from typing import TypedDict

UCI_RE = re.compile(r"^[a-h][1-8][a-h][1-8][qrbn]?$", re.I)
CASTLE_ZERO = {"0-0": "O-O", "0-0-0": "O-O-O", "o-o": "O-O", "o-o-o": "O-O-O"}


class ParsedMove(TypedDict, total=False):
    ok: bool
    uci: str
    san: str
    reason: str
    notation: str


def _primary_token(text: str) -> str:
    tokens = (text or "").strip().split()
    return tokens[0] if tokens else ""


def parse_user_move(raw_text: str, board: chess.Board) -> ParsedMove:
    """
    Parse a single move typed by a person. UCI is tried first when the token looks like
    coordinates, SAN otherwise. Returns ParsedMove with ok/uci/san or a reason on failure.
    """
    token = _primary_token(raw_text)
    if not token:
        return {"ok": False, "reason": "empty_input"}

    if UCI_RE.fullmatch(token):
        try:
            mv = chess.Move.from_uci(token.lower())
        except ValueError:
            return {"ok": False, "reason": "bad_notation", "notation": "uci"}
        if mv not in board.legal_moves:
            return {"ok": False, "reason": "illegal_move", "notation": "uci"}
        return {"ok": True, "uci": mv.uci(), "san": board.san(mv), "notation": "uci"}

    token = CASTLE_ZERO.get(token.lower(), token)
    try:
        mv = board.parse_san(token)
    except chess.IllegalMoveError:
        return {"ok": False, "reason": "illegal_move", "notation": "san"}
    except chess.AmbiguousMoveError:
        return {"ok": False, "reason": "ambiguous_move", "notation": "san"}
    except ValueError:
        return {"ok": False, "reason": "bad_notation"}
    return {"ok": True, "uci": mv.uci(), "san": board.san(mv), "notation": "san"}


def legal_moves_san(board: chess.Board) -> list[str]:
    return [board.san(m) for m in board.legal_moves]


__all__ = [
    "parse_user_move",
    "legal_moves_san",
    "ParsedMove",
]
