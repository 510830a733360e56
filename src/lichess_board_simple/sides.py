"""Which colour we play: resolved once per game from config, then fixed."""
from __future__ import annotations
import random

import chess

COLOR_CHOICES = ("white", "black", "random")


def resolve_side(color: str, rng: random.Random | None = None) -> chess.Color:
    """Map 'white' | 'black' | 'random' to a chess.Color; 'random' is a fair coin flip."""
    c = str(color).strip().lower()
    if c == "white":
        return chess.WHITE
    if c == "black":
        return chess.BLACK
    if c == "random":
        return chess.WHITE if (rng or random).random() < 0.5 else chess.BLACK
    raise ValueError(f"Unsupported color '{color}'. Expected one of {', '.join(COLOR_CHOICES)}.")


def side_name(color: chess.Color) -> str:
    return "white" if color == chess.WHITE else "black"
