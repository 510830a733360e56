from __future__ import annotations
"""
Minimal Lichess Board API transport.

The synchronizer only needs stream_game() and submit_move(); the other calls are used
to pick a game before the loop starts. This module talks HTTP through a requests.Session
and returns plain dicts decoded from the server's JSON / ndjson bodies.
"""
import json
import logging
from typing import Iterator, Optional

import requests

from .config import SETTINGS
from .errors import TransportError

log = logging.getLogger("lichess_client")


class LichessClient:
    def __init__(self, token: Optional[str] = None, host: Optional[str] = None,
                 timeout_s: Optional[float] = None, session: Optional[requests.Session] = None):
        self.host = (host or SETTINGS.lichess_host).rstrip("/")
        self.timeout_s = timeout_s if timeout_s is not None else SETTINGS.request_timeout_s
        self.session = session or requests.Session()
        token = token if token is not None else SETTINGS.lichess_token
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"
        self.session.headers["User-Agent"] = SETTINGS.user_agent

    def _url(self, path: str) -> str:
        return f"{self.host}{path}"

    # ---------------- Account / games -----------------
    def playing_games(self) -> list[dict]:
        """Return the 'nowPlaying' list for the authenticated account."""
        try:
            rsp = self.session.get(self._url("/api/account/playing"), timeout=self.timeout_s)
            rsp.raise_for_status()
        except requests.RequestException as e:
            raise TransportError(f"Failed to list ongoing games: {e}") from e
        games = rsp.json().get("nowPlaying") or []
        log.info("Number of currently active games: %d", len(games))
        return games

    # ---------------- Game stream -----------------
    def stream_game(self, game_id: str) -> Iterator[dict]:
        """Yield one decoded event per ndjson line until the server closes the stream.

        Blank keep-alive lines are skipped. Only the connect phase is bounded by timeout_s;
        waiting for the opponent's next move can take arbitrarily long.
        """
        url = self._url(f"/api/board/game/stream/{game_id}")
        log.info("Streaming game %s", game_id)
        try:
            with self.session.get(url, stream=True, timeout=(self.timeout_s, None)) as rsp:
                rsp.raise_for_status()
                for line in rsp.iter_lines(decode_unicode=True):
                    if not line or not line.strip():
                        continue
                    log.debug("line: %s", line)
                    try:
                        event = json.loads(line)
                    except ValueError as e:
                        raise TransportError(f"Undecodable event on game stream {game_id}: {line!r}") from e
                    yield event
        except requests.RequestException as e:
            raise TransportError(f"Game stream for {game_id} failed: {e}") from e

    def submit_move(self, game_id: str, uci: str) -> bool:
        """Post one UCI move for the game. Returns the server's acknowledgement as a bool."""
        url = self._url(f"/api/board/game/{game_id}/move/{uci}")
        try:
            rsp = self.session.post(url, timeout=self.timeout_s)
        except requests.RequestException as e:
            raise TransportError(f"Submitting move {uci} for game {game_id} failed: {e}") from e
        if rsp.ok:
            log.info("Move %s accepted: %s", uci, rsp.text.strip())
            return True
        log.error("Move %s rejected (%s): %s", uci, rsp.status_code, rsp.text.strip())
        return False

    # ---------------- Challenges -----------------
    def create_challenge(self, username: str, form: dict) -> Optional[str]:
        """Challenge `username` and return the new game id once the server reports it.

        With keepAliveStream the response stays open until the challenge is accepted, so
        lines are read until one carries the game id.
        """
        url = self._url(f"/api/challenge/{username}")
        log.info("Sending challenge to %s", username)
        log.debug("Challenge form: %s", form)
        challenge_id = None
        try:
            with self.session.post(url, data=form, stream=True, timeout=(self.timeout_s, None)) as rsp:
                rsp.raise_for_status()
                for line in rsp.iter_lines(decode_unicode=True):
                    if not line or not line.strip():
                        continue
                    log.debug("received %s", line)
                    try:
                        data = json.loads(line)
                    except ValueError as e:
                        raise TransportError(f"Undecodable line in challenge response: {line!r}") from e
                    if isinstance(data.get("challenge"), dict):
                        # a challenge id doubles as the game id once accepted
                        challenge_id = data["challenge"].get("id") or challenge_id
                    if data.get("done") == "accepted":
                        return challenge_id
                    if data.get("done"):
                        log.warning("Challenge ended without a game: %s", data.get("done"))
                        return None
                    game_id = data.get("gameId")
                    if game_id:
                        return game_id
        except requests.RequestException as e:
            raise TransportError(f"Challenge to {username} failed: {e}") from e
        log.warning("No game ID received for challenge to %s", username)
        return None
