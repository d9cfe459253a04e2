# ducky: Environment-driven defaults. Read once at import; the CLI folds them into a Config (see settings.py).

import os
import pathlib

# Chat API credentials and endpoint
DUCKY_GPT_KEY = os.environ.get("DUCKY_GPT_KEY", "") or os.environ.get("OPENAI_API_KEY", "")
DUCKY_API_BASE = os.environ.get("DUCKY_API_BASE", "https://api.openai.com/v1")

# Engine used when neither the command line nor the conversation names one
DUCKY_MODEL = os.environ.get("DUCKY_MODEL", "gpt-3.5-turbo")

# Rolling exchanges sent with every request
DUCKY_WINDOW_PAIRS = int(os.environ.get("DUCKY_WINDOW_PAIRS", "3") or "3")

# Seconds to wait on the chat API
DUCKY_TIMEOUT_SEC = float(os.environ.get("DUCKY_TIMEOUT_SEC", "240") or "240")

DUCKY_VERBOSE = os.environ.get("DUCKY_VERBOSE", "").strip().lower() in ("1", "true", "yes", "on")

# Storage root: $DUCKY_HOME, else $XDG_CONFIG_HOME/ducky, else ~/.config/ducky
_xdg = os.environ.get("XDG_CONFIG_HOME", "").strip()
DUCKY_HOME = pathlib.Path(
    os.environ.get("DUCKY_HOME", "").strip()
    or (pathlib.Path(_xdg) / "ducky" if _xdg else pathlib.Path.home() / ".config" / "ducky")
)

# Rolling exchanges retained on disk per conversation (kept messages are never dropped)
DUCKY_HISTORY_PAIRS = int(os.environ.get("DUCKY_HISTORY_PAIRS", "200") or "200")
