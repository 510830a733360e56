"""
Game selection before the turn loop starts: join an ongoing game or create one by challenge.

- ChallengeOptions: the challenge form (time control, rating, colour) in Lichess field names.
- prompt_challenge_options(): collects the options interactively.
- join_existing_game()/create_game(): return the game id and the colour we play.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Callable, Optional

import chess

from .lichess_client import LichessClient
from .sides import COLOR_CHOICES, resolve_side, side_name

log = logging.getLogger("session")


@dataclass
class ChallengeOptions:
    rated: bool = False
    clock_limit: int = 600  # seconds
    clock_increment: int = 0
    color: str = "random"
    variant: str = "standard"
    fen: Optional[str] = None

    def as_form(self) -> dict:
        form = {
            "rated": "true" if self.rated else "false",
            "clock.limit": self.clock_limit,
            "clock.increment": self.clock_increment,
            "color": self.color,
            "variant": self.variant,
            "keepAliveStream": "true",
        }
        if self.fen:
            form["fen"] = self.fen
        return form


def parse_time_control(text: str) -> tuple[int, int]:
    """'5+2' → (300, 2): minutes + increment seconds."""
    parts = (text or "").strip().split("+")
    if len(parts) != 2:
        raise ValueError(f"Time control must look like 'min+inc', got '{text}'")
    try:
        minutes, increment = int(parts[0]), int(parts[1])
    except ValueError as e:
        raise ValueError(f"Time control must look like 'min+inc', got '{text}'") from e
    if minutes < 0 or increment < 0:
        raise ValueError(f"Time control values must be non-negative, got '{text}'")
    return minutes * 60, increment


def _ask(input_fn: Callable[[str], str], prompt: str, parse: Callable[[str], object], print_fn: Callable[..., None]):
    while True:
        raw = input_fn(prompt).strip().lower()
        try:
            return parse(raw)
        except ValueError as e:
            print_fn(f"{e}. Please try again.")


def _parse_yes_no(raw: str) -> bool:
    if raw in ("y", "yes"):
        return True
    if raw in ("n", "no"):
        return False
    raise ValueError(f"Expected Y or N, got '{raw}'")


def _parse_color(raw: str) -> str:
    if raw not in COLOR_CHOICES:
        raise ValueError(f"Expected one of {', '.join(COLOR_CHOICES)}, got '{raw}'")
    return raw


def _parse_username(raw: str) -> str:
    if not raw:
        raise ValueError("Username must not be empty")
    return raw


def prompt_challenge_options(input_fn: Optional[Callable[[str], str]] = None,
                             print_fn: Optional[Callable[..., None]] = None,
                             username: Optional[str] = None,
                             time_control: Optional[str] = None,
                             rated: Optional[bool] = None,
                             color: Optional[str] = None) -> tuple[str, ChallengeOptions]:
    """Ask for opponent, time control, rating and colour. Re-asks on bad answers.

    Fields passed in (e.g. from the command line) are taken as given and not asked for.
    """
    input_fn = input_fn or input
    print_fn = print_fn or print
    if username is None:
        username = _ask(input_fn, "Enter the username to challenge: ", _parse_username, print_fn)
    if time_control is None:
        limit, increment = _ask(
            input_fn, "Enter the time control as 'min+inc' (e.g. '5+2'): ", parse_time_control, print_fn
        )
    else:
        limit, increment = parse_time_control(time_control)
    if rated is None:
        rated = _ask(input_fn, "Should the game be rated? [Y|N] ", _parse_yes_no, print_fn)
    if color is None:
        color = _ask(input_fn, "Enter the challenge colour [white|black|random]: ", _parse_color, print_fn)
    else:
        color = _parse_color(color)
    return username, ChallengeOptions(rated=bool(rated), clock_limit=limit, clock_increment=increment, color=color)


def join_existing_game(games: list[dict]) -> Optional[tuple[str, chess.Color]]:
    """Pick the first ongoing game. Returns (game_id, our colour) or None when there is nothing to join."""
    if not games:
        log.error("No ongoing games to join")
        return None
    if len(games) > 1:
        log.warning("More than one current game, selecting the first one")
    game = games[0]
    game_id = game.get("gameId")
    if not game_id:
        log.error("No 'gameId' field in game entry %s", game)
        return None
    color = game.get("color")
    if color not in ("white", "black"):
        log.error("Game %s has no usable 'color' field (%r)", game_id, color)
        return None
    return game_id, resolve_side(color)


def create_game(client: LichessClient, username: str, options: ChallengeOptions,
                rng=None) -> Optional[tuple[str, chess.Color]]:
    """Send a challenge and wait for a game id.

    The colour is resolved here, so a 'random' request is settled by our own coin flip
    and the server receives an explicit colour that matches the side we will play.
    """
    side = resolve_side(options.color, rng)
    form = ChallengeOptions(
        rated=options.rated,
        clock_limit=options.clock_limit,
        clock_increment=options.clock_increment,
        color=side_name(side),
        variant=options.variant,
        fen=options.fen,
    ).as_form()
    game_id = client.create_challenge(username, form)
    if not game_id:
        return None
    log.info("Game ID: %s (playing %s)", game_id, side_name(side))
    return game_id, side
