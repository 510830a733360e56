"""
Replay: rebuild a board from a server move history.

- replay_moves() starts from the game's initial position and applies each UCI token
  with a legality check; the first bad token raises ReplayError.
- game_status() and pgn() mirror what a referee reports for the replayed board.

The returned board is always a fresh object; callers never patch an older one.
"""
from __future__ import annotations
import chess, chess.pgn, datetime
from typing import Iterable, Optional

from .errors import ReplayError

STARTPOS = "startpos"


def split_moves(moves: str | Iterable[str] | None) -> list[str]:
    if not moves:
        return []
    if isinstance(moves, str):
        return moves.split()
    return [m for m in moves if m]


def initial_board(initial_fen: Optional[str] = None) -> chess.Board:
    if not initial_fen or initial_fen == STARTPOS:
        return chess.Board()
    try:
        return chess.Board(fen=initial_fen)
    except ValueError as e:
        raise ReplayError(f"invalid initial FEN '{initial_fen}': {e}") from e


def replay_moves(moves: str | Iterable[str] | None, initial_fen: Optional[str] = None) -> chess.Board:
    """Return the board reached by playing every token in `moves` from the initial position."""
    board = initial_board(initial_fen)
    for idx, token in enumerate(split_moves(moves)):
        try:
            mv = chess.Move.from_uci(token)
        except ValueError as e:
            raise ReplayError(f"unparseable move '{token}' at ply {idx + 1}", token=token, index=idx) from e
        if mv not in board.legal_moves:
            raise ReplayError(
                f"illegal move '{token}' at ply {idx + 1} in position {board.fen()}", token=token, index=idx
            )
        board.push(mv)
    return board


def game_status(board: chess.Board) -> str:
    if board.is_game_over():
        return board.result()
    return "*"


def pgn(board: chess.Board, headers: Optional[dict[str, str]] = None, result: Optional[str] = None) -> str:
    """Serialize the replayed game, starting from the board's own root position."""
    game = chess.pgn.Game.from_board(board)
    game.headers["Event"] = "Lichess board game"
    game.headers["Date"] = datetime.date.today().strftime("%Y.%m.%d")
    for k, v in (headers or {}).items():
        game.headers[k] = v
    game.headers["Result"] = result or game_status(board)
    exporter = chess.pgn.StringExporter(headers=True, variations=False, comments=False)
    return game.accept(exporter)
