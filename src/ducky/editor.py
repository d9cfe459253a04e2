# ducky: Prompt entry through the user's $VISUAL / $EDITOR.

import os
import shlex
import subprocess
import tempfile

from .errors import ConfigError


def open_editor(initial_text: str = "") -> str:
    """Open initial_text in the user's editor, wait for it to exit and return the edited text."""
    editor = os.environ.get("VISUAL") or os.environ.get("EDITOR") or "vi"
    fd, path = tempfile.mkstemp(prefix="ducky-", suffix=".md")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(initial_text)
        try:
            proc = subprocess.run(shlex.split(editor) + [path])
        except OSError as e:
            raise ConfigError(f"Unable to open editor {editor!r}: {e}") from e
        if proc.returncode != 0:
            raise ConfigError(f"Editor {editor!r} exited with status {proc.returncode}")
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
    finally:
        os.unlink(path)
    if not text.strip():
        raise ConfigError("Empty prompt, aborting")
    return text
