# ducky: Pydantic models for messages and persisted conversations.

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from .identity import ConversationIdentity

RECORD_VERSION = 1


class Role(str, Enum):
    system = "system"
    user = "user"
    assistant = "assistant"


class Message(BaseModel):
    """One chat message. Never mutated once it is part of a conversation."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    role: Role = Field(..., description="Author of the message")
    content: str = Field(..., description="Message text")
    kept: bool = Field(False, description="Exempt from windowing and pruning")

    def to_wire(self) -> Dict[str, str]:
        return {"role": self.role.value, "content": self.content}


class Conversation(BaseModel):
    """
    Chronological message history for one identity, plus its recorded engine.

    Messages carry a kept/rolling tag. Kept messages are never removed or
    reordered; rolling messages are only ever dropped oldest-first, in whole
    exchanges.
    """

    model_config = ConfigDict(extra="forbid")

    version: int = RECORD_VERSION
    identity: ConversationIdentity
    engine: Optional[str] = Field(None, description="Engine recorded for this conversation")
    window_pairs: Optional[int] = Field(None, ge=0, description="Per-conversation window override")
    messages: List[Message] = Field(default_factory=list)

    def kept_messages(self) -> List[Message]:
        return [m for m in self.messages if m.kept]

    def rolling_messages(self) -> List[Message]:
        return [m for m in self.messages if not m.kept]

    def append(self, message: Message) -> None:
        """
        Add a message to the history.

        A kept system message goes in front of the first kept non-system
        message so system instructions stay at the head of the kept block.
        """
        if message.kept and message.role == Role.system:
            for i, m in enumerate(self.messages):
                if m.kept and m.role != Role.system:
                    self.messages.insert(i, message)
                    return
        self.messages.append(message)

    def extend(self, messages: List[Message]) -> None:
        for m in messages:
            self.append(m)

    def prune(self, max_exchanges: int) -> int:
        """Drop the oldest rolling exchanges beyond max_exchanges. Returns the number of messages removed."""
        groups = exchanges(self.rolling_messages())
        if len(groups) <= max_exchanges:
            return 0
        doomed = {id(m) for group in groups[: len(groups) - max_exchanges] for m in group}
        before = len(self.messages)
        self.messages = [m for m in self.messages if id(m) not in doomed]
        return before - len(self.messages)


def exchanges(rolling: Sequence[Message]) -> List[List[Message]]:
    """
    Group rolling messages into exchanges.

    An exchange starts at a user message and owns every non-user message that
    follows it (normally the assistant reply). Anything before the first user
    message forms an exchange of its own, so nothing is ever split off.
    """
    groups: List[List[Message]] = []
    for m in rolling:
        if m.role == Role.user or not groups:
            groups.append([m])
        else:
            groups[-1].append(m)
    return groups
