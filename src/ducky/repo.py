# ducky: Locate the enclosing version-controlled project root for a directory.

import pathlib
from typing import Optional, Sequence

VCS_MARKERS = (".git", ".hg", ".svn")


def _has_marker(directory: pathlib.Path, markers: Sequence[str]) -> bool:
    for marker in markers:
        try:
            if (directory / marker).exists():
                return True
        except OSError:
            # Unreadable at this level counts as "not here"
            continue
    return False


def locate(start_dir: pathlib.Path, markers: Sequence[str] = VCS_MARKERS) -> Optional[pathlib.Path]:
    """
    Walk from start_dir up to the filesystem root and return the first directory
    holding a VCS marker (.git may be a file for worktrees and submodules).

    Returns None when no repository encloses start_dir. Never raises for
    permission problems; the walk just moves on to the parent.
    """
    try:
        current = pathlib.Path(start_dir).resolve()
    except OSError:
        current = pathlib.Path(start_dir).absolute()
    for directory in (current, *current.parents):
        if _has_marker(directory, markers):
            return directory
    return None
