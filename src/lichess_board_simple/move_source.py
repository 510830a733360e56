"""
Move source capability shared by the human and engine variants.

The turn synchronizer only relies on request_move(board) -> chess.Move and close().
Anything that satisfies this protocol can be plugged in (an interactive user, a
UCI-style subprocess, a test double) without touching the synchronizer.
"""
from __future__ import annotations
from typing import Protocol, runtime_checkable

import chess


@runtime_checkable
class MoveSource(Protocol):
    name: str

    def request_move(self, board: chess.Board) -> chess.Move:
        """Return a legal move for the side to move on `board`. The board is a private copy."""
        ...

    def close(self) -> None:
        ...
