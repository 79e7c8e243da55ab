from __future__ import annotations

import json
from dataclasses import dataclass
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def _config_dir() -> Path:
    xdg = os.getenv("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "karaoke-sync"
    return Path.home() / ".config" / "karaoke-sync"


def _config_file() -> Path:
    return _config_dir() / "config.json"


@dataclass(frozen=True)
class AppConfig:
    config_dir: Path

    # Catalog
    catalog: str | None
    http_timeout_s: float
    http_max_retries: int
    http_backoff_base_s: float

    # Players
    master_player: str | None
    follower_players: tuple[str, ...]
    seek_threshold_ms: int

    # Lyrics / rendering
    refresh_hz: float
    buffer_ms: int
    use_alt_screen: bool


# config.json key -> environment variable
_ENV = {
    "catalog": "KARAOKE_SYNC_CATALOG",
    "master_player": "KARAOKE_SYNC_MASTER",
    "follower_players": "KARAOKE_SYNC_FOLLOWERS",
    "refresh_hz": "KARAOKE_SYNC_REFRESH_HZ",
    "buffer_ms": "KARAOKE_SYNC_BUFFER_MS",
    "seek_threshold_ms": "KARAOKE_SYNC_SEEK_THRESHOLD_MS",
    "use_alt_screen": "KARAOKE_SYNC_ALT_SCREEN",
    "http_timeout_s": "KARAOKE_SYNC_HTTP_TIMEOUT",
    "http_max_retries": "KARAOKE_SYNC_HTTP_MAX_RETRIES",
    "http_backoff_base_s": "KARAOKE_SYNC_HTTP_BACKOFF_BASE",
}


def _load_file(config_dir: Path) -> dict[str, Any]:
    cfg_path = config_dir / "config.json"
    if not cfg_path.exists():
        return {}
    try:
        data = json.loads(cfg_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable %s: %s", cfg_path, e)
        return {}
    return data if isinstance(data, dict) else {}


def _split_list(value: Any) -> tuple[str, ...]:
    if isinstance(value, (list, tuple)):
        return tuple(str(v).strip() for v in value if str(v).strip())
    return tuple(s.strip() for s in str(value).split(",") if s.strip())


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() not in ("0", "false", "no", "off", "")


def load_config() -> AppConfig:
    # Priority: config.json → KARAOKE_SYNC_* → defaults
    config_dir = _config_dir()
    file_values = _load_file(config_dir)

    def get(key: str, default: Any) -> Any:
        if file_values.get(key) is not None:
            return file_values[key]
        env = os.getenv(_ENV[key])
        return env if env else default

    return AppConfig(
        config_dir=config_dir,
        catalog=get("catalog", None),
        http_timeout_s=float(get("http_timeout_s", 10.0)),
        http_max_retries=int(get("http_max_retries", 3)),
        http_backoff_base_s=float(get("http_backoff_base_s", 1.0)),
        master_player=get("master_player", None),
        follower_players=_split_list(get("follower_players", ())),
        seek_threshold_ms=int(get("seek_threshold_ms", 1000)),
        refresh_hz=float(get("refresh_hz", 30.0)),
        buffer_ms=int(get("buffer_ms", 100)),
        use_alt_screen=_as_bool(get("use_alt_screen", True)),
    )


def save_config_value(key: str, value: Any) -> Path:
    if key not in _ENV:
        raise KeyError(key)
    cfg_path = _config_file()
    cfg_path.parent.mkdir(parents=True, exist_ok=True)
    data = _load_file(cfg_path.parent)
    data[key] = value
    cfg_path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    return cfg_path
