import argparse
import json
import logging
import sys

from lichess_board_simple.config import SETTINGS
from lichess_board_simple.engine_source import EngineMoveSource, ThinkBudget
from lichess_board_simple.errors import SyncError
from lichess_board_simple.lichess_client import LichessClient
from lichess_board_simple.replay import pgn
from lichess_board_simple.session import (
    create_game,
    join_existing_game,
    prompt_challenge_options,
)
from lichess_board_simple.sides import COLOR_CHOICES, side_name
from lichess_board_simple.sync import TurnSynchronizer
from lichess_board_simple.user_source import HumanMoveSource


def load_json_config(path: str) -> dict:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        logging.getLogger("play_lichess").error("Failed to read config %s: %s", path, e)
        return {}


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Play a Lichess game as a human or through a UCI engine.")
    ap.add_argument("--config", default=None, help="Optional JSON config file to load defaults from.")
    ap.add_argument("--mode", choices=["join", "create"], default=None, help="Join an ongoing game or create one by challenge")
    ap.add_argument("--source", choices=["human", "engine"], default=None, help="Who picks our moves")
    ap.add_argument("--engine-path", default=None, help="Engine executable (defaults to ENGINE_PATH or stockfish on PATH)")
    ap.add_argument("--depth", type=int, default=None, help="Engine search depth (ignored if --movetime provided)")
    ap.add_argument("--movetime", type=int, default=None, help="Engine movetime in ms (overrides depth if set)")
    # Challenge options; any left unset are prompted for unless --opponent is given
    ap.add_argument("--opponent", default=None, help="Username to challenge in create mode")
    ap.add_argument("--time-control", default=None, help="Challenge clock as 'min+inc' (e.g. 5+2)")
    ap.add_argument("--rated", action="store_true", default=None, help="Make the challenge rated")
    ap.add_argument("--color", choices=list(COLOR_CHOICES), default=None, help="Challenge colour")
    # Misc
    ap.add_argument("--pgn-out", default=None, help="Optional path to write PGN at end")
    ap.add_argument("--log-level", default=None, help="Python logging level (e.g., INFO, DEBUG)")

    args = ap.parse_args(argv)

    # Load config defaults
    cfg_dict = load_json_config(args.config) if args.config else {}

    # Resolve values with precedence: CLI arg if provided -> config -> default
    def pick(*keys, default=None):
        for k in keys:
            v = getattr(args, k, None)
            if v is not None:
                return v
            if k in cfg_dict and cfg_dict[k] is not None:
                return cfg_dict[k]
        return default

    # Logging setup
    log_level = pick("log_level", default="INFO").upper()
    logging.basicConfig(level=getattr(logging, log_level, logging.INFO), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    log = logging.getLogger("play_lichess")

    if not SETTINGS.lichess_token:
        log.error("LICHESS_TOKEN is not set (settings.yml, .env or environment)")
        return 1

    mode = pick("mode", default=None)
    source_type = pick("source", default="human")
    engine_path = pick("engine_path", default=None)
    depth = pick("depth", default=SETTINGS.engine_depth)
    movetime = pick("movetime", default=SETTINGS.engine_movetime_ms)

    client = LichessClient()
    try:
        games = client.playing_games()
        if mode is None:
            print(f"Create a new game or join an existing one? [C|J] (you have {len(games)} ongoing game{'' if len(games) == 1 else 's'})")
            answer = input().strip().lower()
            mode = {"c": "create", "j": "join"}.get(answer)
            if mode is None:
                log.error("Invalid input, exiting.")
                return 1

        if mode == "join":
            picked = join_existing_game(games)
        else:
            opponent = pick("opponent", default=None)
            presets = {"time_control": pick("time_control"), "rated": pick("rated"), "color": pick("color")}
            if opponent:
                # nothing is prompted with an opponent given; unset options take their defaults
                presets = {
                    "time_control": presets["time_control"] or "10+0",
                    "rated": bool(presets["rated"]),
                    "color": presets["color"] or "random",
                }
            while True:
                opponent, options = prompt_challenge_options(username=opponent, **presets)
                picked = create_game(client, opponent.lower(), options)
                if picked:
                    break
                print("Error creating game, try again? [Y|N]")
                if input().strip().lower() != "y":
                    break
                # a retry asks for every option again
                opponent, presets = None, {}
        if not picked:
            log.error("No game to play, exiting.")
            return 1
        game_id, side = picked
        log.info("Current game ID: %s, playing %s", game_id, side_name(side))

        # Move source
        if source_type == "engine":
            if movetime:
                budget = ThinkBudget(movetime_ms=int(movetime))
            else:
                budget = ThinkBudget(depth=int(depth) if depth else 10)
            source = EngineMoveSource(engine_path=engine_path, budget=budget)
        else:
            source = HumanMoveSource()

        log.info("Starting game %s: source=%s depth=%s movetime=%s side=%s", game_id, source_type, depth, movetime, side_name(side))
        synchronizer = TurnSynchronizer(session=client, source=source, side=side, game_id=game_id)
        outcome = synchronizer.run(client.stream_game(game_id))
    except SyncError as e:
        log.error("%s failed: %s", e.stage, e)
        return 1
    except ValueError as e:
        log.error("Invalid option: %s", e)
        return 1

    print("Result:", outcome.result)
    print("Termination:", outcome.reason)
    game_pgn = pgn(outcome.board, headers={"Site": f"{SETTINGS.lichess_host}/{game_id}"}, result=outcome.result)
    print("PGN:\n", game_pgn)

    if args.pgn_out:
        with open(args.pgn_out, "w", encoding="utf-8") as f:
            f.write(game_pgn)
        log.info("Wrote PGN to %s", args.pgn_out)
    return 0


if __name__ == "__main__":
    sys.exit(main())
