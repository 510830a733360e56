from __future__ import annotations
"""Interactive human move source that only returns legal moves."""
from typing import Callable

import chess

from .move_parsing import parse_user_move, legal_moves_san


class HumanMoveSource:
    name = "Human"

    def __init__(self, input_fn: Callable[[str], str] = input, print_fn: Callable[..., None] = print):
        self._input = input_fn
        self._print = print_fn

    def request_move(self, board: chess.Board) -> chess.Move:
        """Prompt the user for a legal move; repeat until valid."""
        self._print("\nYour turn. Board FEN:", board.fen())
        self._print(board)
        if board.move_stack:
            self._print("Opponent's move:", board.peek().uci())
        self._print("Legal moves:", ", ".join(legal_moves_san(board)))
        while True:
            raw = self._input("Enter your move in SAN or UCI (e.g., e4 or e2e4): ").strip()
            if not raw:
                continue
            parsed = parse_user_move(raw, board)
            if parsed.get("ok"):
                return chess.Move.from_uci(parsed["uci"])
            if parsed.get("reason") == "illegal_move":
                self._print(f"Illegal move '{raw}'. Please try again with a legal move.")
            else:
                self._print(f"Could not read '{raw}' as a move ({parsed.get('reason')}). Please try again.")

    def close(self):
        return
