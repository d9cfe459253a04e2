# ducky: Conversation identities (global or repository-scoped) and the rules that resolve them from -c.

from __future__ import annotations

import pathlib
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict

from .errors import ConfigError

DEFAULT_GLOBAL_NAME = "default"
LOCAL_PREFIX = ":"


class Scope(str, Enum):
    global_ = "global"
    local = "local"


class ConversationIdentity(BaseModel):
    """
    Stable key for one conversation.

    Global conversations are shared across repositories. Local ones belong to
    a single repository root; an empty local name is that repository's default.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    scope: Scope
    name: str
    repo_root: Optional[str] = None

    @classmethod
    def global_(cls, name: str) -> "ConversationIdentity":
        return cls(scope=Scope.global_, name=name)

    @classmethod
    def local(cls, repo_root: pathlib.Path, name: str = "") -> "ConversationIdentity":
        return cls(scope=Scope.local, name=name, repo_root=str(pathlib.Path(repo_root)))

    @property
    def is_local(self) -> bool:
        return self.scope == Scope.local

    @property
    def key(self) -> str:
        if self.is_local:
            return f"local:{self.repo_root}:{self.name}"
        return f"global:{self.name}"

    def describe(self) -> str:
        """Human-readable label used in listings and log lines."""
        if not self.is_local:
            return self.name
        label = f":{self.name}" if self.name else "(repository default)"
        return f"{label} @ {self.repo_root}"


def validate_name(name: str, allow_empty: bool = False) -> str:
    """Reject names that cannot serve as a single file name."""
    if not name:
        if allow_empty:
            return name
        raise ConfigError("Conversation name must not be empty")
    if name in (".", "..") or name.startswith("."):
        raise ConfigError(f"Invalid conversation name: {name!r}")
    if any(ch in name for ch in ("/", "\\", "\x00")):
        raise ConfigError(f"Conversation name may not contain path separators: {name!r}")
    return name


def resolve(requested_name: Optional[str], repo_root: Optional[pathlib.Path]) -> ConversationIdentity:
    """
    Resolve the -c argument into a ConversationIdentity.

    - No name: the repository default when inside one, else Global("default").
    - ":name": Local(repo_root, name); ConfigError when there is no repository.
    - Anything else: Global(name), whether or not a repository is present.
    """
    if requested_name is None:
        if repo_root is not None:
            return ConversationIdentity.local(repo_root)
        return ConversationIdentity.global_(DEFAULT_GLOBAL_NAME)

    if requested_name.startswith(LOCAL_PREFIX):
        name = validate_name(requested_name[len(LOCAL_PREFIX):], allow_empty=True)
        if repo_root is None:
            raise ConfigError(
                f"Local conversation {requested_name!r} requested outside of any repository"
            )
        return ConversationIdentity.local(repo_root, name)

    return ConversationIdentity.global_(validate_name(requested_name))
