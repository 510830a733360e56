"""
Subprocess engine move source.

- Resolves the engine command from: explicit parameter, SETTINGS.engine_path/env, or 'stockfish' on PATH.
- Spawns the process once and keeps it for the whole game so its internal tables survive between moves.
- request_move(): sends 'position fen <FEN>' and 'go depth N' | 'go movetime MS', then reads
  lines until 'bestmove <token> ...'. Every other line is engine chatter and is only logged.
- close(): sends 'quit', waits for exit and records the return code.

"""
from __future__ import annotations
import logging, os, shutil, subprocess
from dataclasses import dataclass
from typing import Sequence

import chess

from .config import SETTINGS
from .errors import EngineError

BESTMOVE = "bestmove"


@dataclass(frozen=True)
class ThinkBudget:
    """Either a fixed search depth (reproducible strength) or a time budget in ms (live play)."""
    depth: int | None = None
    movetime_ms: int | None = None

    def __post_init__(self):
        if (self.depth is None) == (self.movetime_ms is None):
            raise ValueError("ThinkBudget needs exactly one of depth or movetime_ms")
        if (self.depth is not None and self.depth <= 0) or (self.movetime_ms is not None and self.movetime_ms <= 0):
            raise ValueError("ThinkBudget values must be positive")

    def command(self) -> str:
        if self.movetime_ms is not None:
            return f"go movetime {self.movetime_ms}"
        return f"go depth {self.depth}"


def default_budget() -> ThinkBudget:
    """Movetime from settings wins over depth; depth 10 when neither is configured."""
    if SETTINGS.engine_movetime_ms:
        return ThinkBudget(movetime_ms=SETTINGS.engine_movetime_ms)
    return ThinkBudget(depth=SETTINGS.engine_depth or 10)


def resolve_engine_command(engine_path: str | Sequence[str] | None) -> list[str]:
    """Return an argv list for the engine.

    engine_path precedence:
      1. explicit parameter (a path/name, or a ready-made argv list)
      2. ENGINE_PATH env / settings
      3. auto-detect via shutil.which('stockfish')
    Raises EngineError with guidance if not found.
    """
    if engine_path and not isinstance(engine_path, str):
        return list(engine_path)
    candidate = engine_path or SETTINGS.engine_path or "stockfish"
    resolved = shutil.which(candidate) or (candidate if os.path.isfile(candidate) else None)
    if not resolved:
        raise EngineError(
            f"Engine not found (candidate='{candidate}'). Set environment variable ENGINE_PATH "
            "to the binary path, or pass --engine-path."
        )
    return [resolved]


class EngineMoveSource:
    name = "Engine"

    def __init__(self, engine_path: str | Sequence[str] | None = None, budget: ThinkBudget | None = None,
                 quit_timeout_s: float = 5.0):
        self.log = logging.getLogger("EngineMoveSource")
        self.command = resolve_engine_command(engine_path)
        self.budget = budget or default_budget()
        self.quit_timeout_s = quit_timeout_s
        self.returncode: int | None = None
        try:
            self.proc = subprocess.Popen(
                self.command,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                text=True,
                bufsize=1,
            )
        except OSError as e:
            raise EngineError(f"Failed launching engine {self.command}: {e}") from e
        self.log.info("Started engine %s (pid %s)", self.command[0], self.proc.pid)

    def __enter__(self) -> "EngineMoveSource":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @property
    def closed(self) -> bool:
        return self.returncode is not None

    def _send(self, line: str):
        if self.closed or self.proc.stdin is None:
            raise EngineError("Engine process is not running")
        self.log.debug("> %s", line)
        try:
            self.proc.stdin.write(line + "\n")
            self.proc.stdin.flush()
        except (OSError, ValueError) as e:
            raise EngineError(f"Engine stopped accepting input ({e})") from e

    def _read_bestmove(self) -> str:
        while True:
            line = self.proc.stdout.readline()
            if not line:
                raise EngineError("Engine output closed before a bestmove line was produced")
            line = line.strip()
            parts = line.split()
            if parts and parts[0] == BESTMOVE:
                if len(parts) < 2:
                    raise EngineError(f"Malformed engine result line: '{line}'")
                return parts[1]
            self.log.debug("< %s", line)

    def request_move(self, board: chess.Board, budget: ThinkBudget | None = None) -> chess.Move:
        limit = budget or self.budget
        self._send(f"position fen {board.fen()}")
        self._send(limit.command())
        token = self._read_bestmove()
        if token in ("(none)", "0000"):
            raise EngineError(f"Engine returned no move for position {board.fen()}")
        try:
            mv = chess.Move.from_uci(token)
        except ValueError as e:
            raise EngineError(f"Engine returned unparseable move '{token}'") from e
        if mv not in board.legal_moves:
            raise EngineError(f"Engine returned illegal move '{token}' for position {board.fen()}")
        self.log.debug("Engine chose %s", token)
        return mv

    def close(self):
        if self.closed:
            return
        if self.proc.poll() is None:
            try:
                self._send("quit")
                self.proc.stdin.close()
            except (EngineError, OSError) as e:
                self.log.debug("Engine gone before quit: %s", e)
        try:
            self.returncode = self.proc.wait(timeout=self.quit_timeout_s)
        except subprocess.TimeoutExpired:
            self.log.warning("Engine did not exit within %.1fs; killing it", self.quit_timeout_s)
            self.proc.kill()
            self.returncode = self.proc.wait()
        for pipe in (self.proc.stdin, self.proc.stdout):
            if pipe is not None and not pipe.closed:
                try:
                    pipe.close()
                except OSError as e:
                    self.log.debug("Closing engine pipe failed: %s", e)
        if self.returncode != 0:
            self.log.warning("Engine exited with status %s", self.returncode)
        else:
            self.log.info("Engine exited with status %s", self.returncode)
