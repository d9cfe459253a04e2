# ducky: File-per-conversation storage keyed by ConversationIdentity, with backup rotation and advisory locking.

import contextlib
import json
import pathlib
import shutil
from typing import Iterator, List, Optional, Tuple

from pydantic import ValidationError

from .errors import StoreError
from .fs import locked, now_ts, read_json, sha256_text, write_json
from .identity import ConversationIdentity
from .models import RECORD_VERSION, Conversation


class ConversationStore:
    """
    Persistence for conversation records under <home>/conversations.

    Layout:
      global/<name>.json
      local/<sha256(repo_root)>/default.json        repository default
      local/<sha256(repo_root)>/named/<name>.json   named local conversations
    """

    def __init__(self, home: pathlib.Path) -> None:
        self.root = pathlib.Path(home) / "conversations"

    def path_for(self, identity: ConversationIdentity) -> pathlib.Path:
        """Deterministic record path; independent of the current directory."""
        if not identity.is_local:
            return self.root / "global" / f"{identity.name}.json"
        repo_dir = self.root / "local" / sha256_text(str(identity.repo_root))
        if not identity.name:
            return repo_dir / "default.json"
        return repo_dir / "named" / f"{identity.name}.json"

    def exists(self, identity: ConversationIdentity) -> bool:
        return self.path_for(identity).exists()

    def load(self, identity: ConversationIdentity) -> Conversation:
        """Load a conversation; a missing record yields an empty one."""
        path = self.path_for(identity)
        if not path.exists():
            return Conversation(identity=identity)
        conv = self._read(path)
        if conv.identity != identity:
            raise StoreError(f"Record {path} belongs to {conv.identity.key}, not {identity.key}", path)
        return conv

    def save(self, conversation: Conversation) -> pathlib.Path:
        path = self.path_for(conversation.identity)
        try:
            write_json(path, conversation.model_dump(mode="json"))
        except (OSError, ValueError) as e:
            # ValueError covers UnicodeEncodeError from lone surrogates in message text
            raise StoreError(f"Could not write {path}: {e}", path) from e
        return path

    def clear(self, identity: ConversationIdentity) -> Optional[pathlib.Path]:
        """Rotate the record to a timestamped .bak.json file. Returns the backup path, or None if there was nothing to clear."""
        path = self.path_for(identity)
        if not path.exists():
            return None
        backup = path.with_name(f"{path.stem}-{int(now_ts())}.bak.json")
        try:
            shutil.move(str(path), str(backup))
        except OSError as e:
            raise StoreError(f"Could not rotate {path}: {e}", path) from e
        return backup

    def list_conversations(self) -> Tuple[List[Tuple[ConversationIdentity, int]], List[StoreError]]:
        """
        Return ((identity, message count) for every readable record sorted by key, unreadable records).

        A corrupt record does not hide the others; its StoreError is returned
        in the second list for the caller to report.
        """
        found: List[Tuple[ConversationIdentity, int]] = []
        unreadable: List[StoreError] = []
        if not self.root.exists():
            return found, unreadable
        for path in sorted(self.root.rglob("*.json")):
            if path.name.endswith(".bak.json"):
                continue
            try:
                conv = self._read(path)
            except StoreError as e:
                unreadable.append(e)
                continue
            found.append((conv.identity, len(conv.messages)))
        return sorted(found, key=lambda item: item[0].key), unreadable

    @contextlib.contextmanager
    def lock(self, identity: ConversationIdentity) -> Iterator[None]:
        """Exclusive advisory lock around a load-modify-save of one identity."""
        path = self.path_for(identity)
        lock_path = path.with_name(path.name + ".lock")
        with contextlib.ExitStack() as stack:
            try:
                stack.enter_context(locked(lock_path))
            except OSError as e:
                raise StoreError(f"Could not lock {path}: {e}", path) from e
            yield

    def _read(self, path: pathlib.Path) -> Conversation:
        try:
            data = read_json(path)
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"Could not read {path}: {e}", path) from e
        if not isinstance(data, dict) or data.get("version") != RECORD_VERSION:
            raise StoreError(f"Unsupported conversation record format in {path}", path)
        try:
            return Conversation.model_validate(data)
        except ValidationError as e:
            raise StoreError(f"Corrupt conversation record {path}: {e}", path) from e
