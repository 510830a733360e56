"""
Configuration and environment loading for the Lichess board client.

- Loads .env (python-dotenv) and settings.yml (YAML) from repo root if present; falls back to environment variables.
- Exposes SETTINGS with keys used across the project (API token, host, engine defaults, timeouts).
"""
from dataclasses import dataclass
import os
from typing import Any, Callable

import yaml
from dotenv import load_dotenv

load_dotenv()


def _repo_root() -> str:
    # this file: src/lichess_board_simple/config.py → repo root is two levels up
    return os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))


def _load_yaml(path: str) -> dict:
    if not os.path.isfile(path):
        return {}
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return data if isinstance(data, dict) else {}


def _optional_int(val: Any) -> int | None:
    if val is None or val == "":
        return None
    return int(val)


@dataclass(frozen=True)
class Settings:
    # Auth / endpoint
    lichess_token: str
    lichess_host: str
    user_agent: str
    request_timeout_s: float

    # Engine defaults
    engine_path: str
    engine_depth: int | None
    engine_movetime_ms: int | None


def load_settings(path: str | None = None) -> Settings:
    """Build Settings from a YAML file (YAML takes precedence), then env, then defaults."""
    cfg = _load_yaml(path or os.path.join(_repo_root(), "settings.yml"))

    def _get(name: str, default: Any, cast: Callable[[Any], Any] | None = None) -> Any:
        if name in cfg:
            val = cfg[name]
            return cast(val) if cast else val
        env = os.environ.get(name)
        if env is not None:
            return cast(env) if cast else env
        return default

    return Settings(
        lichess_token=str(_get("LICHESS_TOKEN", "")).strip(),
        lichess_host=str(_get("LICHESS_HOST", "https://lichess.org")).rstrip("/"),
        user_agent=_get("LICHESS_USER_AGENT", "lichess-board-simple"),
        request_timeout_s=_get("LICHESS_TIMEOUT_S", 30.0, cast=float),
        engine_path=_get("ENGINE_PATH", ""),
        engine_depth=_get("ENGINE_DEPTH", None, cast=_optional_int),
        engine_movetime_ms=_get("ENGINE_MOVETIME_MS", None, cast=_optional_int),
    )


SETTINGS = load_settings()
