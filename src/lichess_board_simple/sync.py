"""
Turn synchronizer: keeps the local board in step with a remote game and moves when it is our turn.

- Every substantive snapshot carries the full move list; the board is rebuilt from the initial
  position each time (never diffed against the previous list), so resent or corrected histories
  are handled the same way as fresh ones.
- Side-to-move is read from the replayed board; our side is fixed at construction.
- Chat lines and other events without a move list are ignored.
- When it is our turn, the move source gets a copy of the board and its move is posted to the
  server. The board is not advanced locally; the next snapshot confirms the move.
- The loop ends on a terminal position (per python-chess) or a terminal server status.

"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Protocol

import chess

from .errors import SubmissionError, TransportError
from .move_source import MoveSource
from .replay import STARTPOS, game_status, initial_board, replay_moves, split_moves
from .sides import side_name

CHAT_LINE = "chatLine"
GAME_FULL = "gameFull"
ONGOING_STATUSES = {"created", "started"}
DRAW_STATUSES = {"draw", "stalemate"}


class RemoteSession(Protocol):
    def submit_move(self, game_id: str, uci: str) -> bool:
        ...


@dataclass
class TurnDecision:
    """What the synchronizer concluded from one substantive snapshot."""
    ply: int
    fen: str
    to_move: chess.Color
    our_turn: bool
    status: str = "started"
    finished: bool = False
    move: Optional[str] = None  # UCI we submitted, if any


@dataclass
class GameOutcome:
    result: str
    reason: str
    board: chess.Board


def is_substantive(event: dict) -> bool:
    if event.get("type") == CHAT_LINE:
        return False
    return extract_moves(event) is not None


def extract_moves(event: dict) -> Optional[str]:
    """Move history is at top level for gameState events and under 'state' for gameFull."""
    state = event.get("state")
    if isinstance(state, dict) and "moves" in state:
        return state.get("moves") or ""
    if "moves" in event:
        return event.get("moves") or ""
    return None


def extract_status(event: dict) -> tuple[str, Optional[str]]:
    state = event.get("state") if isinstance(event.get("state"), dict) else event
    return state.get("status") or "started", state.get("winner")


def _server_result(status: str, winner: Optional[str]) -> str:
    if winner == "white":
        return "1-0"
    if winner == "black":
        return "0-1"
    if status in DRAW_STATUSES:
        return "1/2-1/2"
    return "*"


class TurnSynchronizer:
    def __init__(self, session: RemoteSession, source: MoveSource, side: chess.Color, game_id: str,
                 initial_fen: Optional[str] = None):
        self.log = logging.getLogger("TurnSynchronizer")
        self.session = session
        self.source = source
        self.side = side
        self.game_id = game_id
        self.initial_fen = initial_fen or STARTPOS
        self._board = initial_board(self.initial_fen)
        self.decisions: list[TurnDecision] = []
        self.outcome: Optional[GameOutcome] = None
        # history (initial FEN + moves) we already answered; repeats of it are not our move again
        self._answered: Optional[tuple[str, tuple[str, ...]]] = None

    @property
    def board(self) -> chess.Board:
        """A copy of the last replayed position; callers can't disturb the held one."""
        return self._board.copy()

    def handle_event(self, event: dict) -> Optional[TurnDecision]:
        """Process one stream event. Returns None for events that carry no move list."""
        if event.get("type") == CHAT_LINE:
            self.log.info("chat line: %s says %s", event.get("username"), event.get("text"))
            return None
        if not is_substantive(event):
            self.log.debug("Ignoring event without a move list: %s", event.get("type"))
            return None

        moves = extract_moves(event)
        initial_fen = self.initial_fen
        if event.get("type") == GAME_FULL and event.get("initialFen"):
            initial_fen = event["initialFen"]
        self.log.info("moves made so far: %s", moves or "(none)")
        board = replay_moves(moves, initial_fen)
        self.initial_fen = initial_fen
        self._board = board
        history = (initial_fen, tuple(split_moves(moves)))
        repeated = history == self._answered
        if not repeated:
            # any other history (next ply, takeback, correction) re-arms the move request
            self._answered = None

        status, winner = extract_status(event)
        decision = TurnDecision(
            ply=len(split_moves(moves)),
            fen=board.fen(),
            to_move=board.turn,
            our_turn=board.turn == self.side,
            status=status,
        )
        self.decisions.append(decision)

        if board.is_game_over():
            decision.finished = True
            outcome = board.outcome()
            reason = outcome.termination.name.lower() if outcome else "game_over"
            self.outcome = GameOutcome(result=game_status(board), reason=reason, board=board.copy())
        elif status not in ONGOING_STATUSES:
            decision.finished = True
            self.outcome = GameOutcome(result=_server_result(status, winner), reason=status, board=board.copy())
        if decision.finished:
            self.log.info("Game %s over: result=%s reason=%s", self.game_id, self.outcome.result, self.outcome.reason)
            return decision

        if not decision.our_turn:
            self.log.debug("Waiting for %s to move", side_name(board.turn))
            return decision

        if repeated:
            self.log.debug("Already moved in this position (ply %d); waiting for the server", decision.ply)
            return decision

        if board.move_stack:
            self.log.info("opponent's move: %s", board.peek().uci())
        mv = self.source.request_move(board.copy())
        uci = mv.uci()
        if not self.session.submit_move(self.game_id, uci):
            raise SubmissionError(f"Server rejected move {uci} for game {self.game_id}")
        self._answered = history
        decision.move = uci
        self.log.info("Submitted %s for %s", uci, side_name(self.side))
        return decision

    def run(self, events: Iterable[dict]) -> GameOutcome:
        """Consume events until the game ends. The move source is closed on every exit path."""
        self.log.info("Entering game stream loop for %s as %s", self.game_id, side_name(self.side))
        try:
            outcome = self._consume(events)
        except BaseException:
            self._release(events, failing=True)
            raise
        self._release(events, failing=False)
        return outcome

    def _consume(self, events: Iterable[dict]) -> GameOutcome:
        for event in events:
            decision = self.handle_event(event)
            if decision is not None and decision.finished:
                return self.outcome
        raise TransportError(f"Game stream for {self.game_id} closed before the game ended")

    def _release(self, events: Iterable[dict], failing: bool):
        close_events = getattr(events, "close", None)
        if callable(close_events):
            close_events()
        if not failing:
            self.source.close()
            return
        # the error already propagating is the one to report
        try:
            self.source.close()
        except Exception:
            self.log.exception("Closing move source %s failed", getattr(self.source, "name", self.source))
