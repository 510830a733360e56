"""Failure types for the game loop. Each one names the stage that failed."""
from __future__ import annotations


class SyncError(RuntimeError):
    stage = "game loop"


class ReplayError(SyncError):
    """The server's move history could not be replayed on a fresh board."""
    stage = "replay"

    def __init__(self, message: str, token: str | None = None, index: int | None = None):
        super().__init__(message)
        self.token = token
        self.index = index


class EngineError(SyncError):
    stage = "move acquisition"


class SubmissionError(SyncError):
    stage = "submission"


class TransportError(SyncError):
    stage = "transport"
