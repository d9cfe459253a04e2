# ducky: YAML settings loader and the Config object handed to the session.

from __future__ import annotations

import pathlib
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from . import config
from .errors import ConfigError


class Config(BaseModel):
    """Resolved runtime configuration; built once at startup."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    api_key: str = Field("", description="Chat API credential")
    model: str = Field(..., description="Default engine")
    window_pairs: int = Field(3, ge=0, description="Rolling exchanges sent per request")
    history_pairs: int = Field(200, ge=0, description="Rolling exchanges retained on disk")
    home: pathlib.Path = Field(..., description="Storage root for conversations and settings")
    api_base: str = Field(..., description="Chat API base URL")
    timeout_sec: float = Field(240.0, gt=0, description="Chat API timeout")
    verbose: bool = False
    httpcalls_dir: Optional[pathlib.Path] = Field(None, description="Where to dump .http request files")


def load_settings(home: pathlib.Path) -> Dict[str, Any]:
    """
    Load settings from <home>/settings.yaml or settings.yml.

    Returns an empty dict {} when the settings file is missing, unreadable, or
    does not contain a mapping. The function never raises.
    """
    for p in (home / "settings.yaml", home / "settings.yml"):
        try:
            if p.exists() and p.is_file():
                data = yaml.safe_load(p.read_text(encoding="utf-8"))
                if isinstance(data, dict):
                    return data
                return {}
        except (OSError, yaml.YAMLError):
            continue
    return {}


def build_config(
    home: Optional[pathlib.Path] = None,
    settings: Optional[Dict[str, Any]] = None,
    **overrides: Any,
) -> Config:
    """
    Merge explicit overrides > settings.yaml > environment defaults into a Config.

    Settings keys: model, window_pairs, history_pairs, api_base, timeout_sec, api_key, verbose and
    logging.httpcalls.dir (relative paths resolve against home).
    """
    home = pathlib.Path(home) if home is not None else config.DUCKY_HOME
    if settings is None:
        settings = load_settings(home)

    log_cfg = settings.get("logging")
    httpcalls = log_cfg.get("httpcalls") if isinstance(log_cfg, dict) else None
    httpcalls_dir = None
    if isinstance(httpcalls, dict) and httpcalls.get("dir"):
        d = pathlib.Path(str(httpcalls["dir"])).expanduser()
        httpcalls_dir = d if d.is_absolute() else home / d

    values: Dict[str, Any] = {
        "api_key": settings.get("api_key") or config.DUCKY_GPT_KEY,
        "model": settings.get("model") or config.DUCKY_MODEL,
        "window_pairs": settings.get("window_pairs", config.DUCKY_WINDOW_PAIRS),
        "history_pairs": settings.get("history_pairs", config.DUCKY_HISTORY_PAIRS),
        "home": home,
        "api_base": settings.get("api_base") or config.DUCKY_API_BASE,
        "timeout_sec": settings.get("timeout_sec", config.DUCKY_TIMEOUT_SEC),
        "verbose": bool(settings.get("verbose", config.DUCKY_VERBOSE)),
        "httpcalls_dir": httpcalls_dir,
    }
    values.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return Config(**values)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e}") from e
