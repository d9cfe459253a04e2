# ducky: Request window assembly: kept messages, the latest rolling exchanges, then this turn's messages.

from typing import List, Optional, Sequence

from .models import Conversation, Message, Role, exchanges


def new_turn_messages(prompt: str, system: Optional[str] = None, kept: Sequence[str] = ()) -> List[Message]:
    """Build this turn's messages: system first, kept messages next, the prompt last."""
    out: List[Message] = []
    if system:
        # System instructions are always retained
        out.append(Message(role=Role.system, content=system, kept=True))
    for text in kept:
        out.append(Message(role=Role.user, content=text, kept=True))
    out.append(Message(role=Role.user, content=prompt))
    return out


def build_request_window(conversation: Conversation, new_messages: Sequence[Message], pairs: int) -> List[Message]:
    """
    Return the exact message list to send for one request.

    All kept messages in stored order, then the most recent `pairs` rolling
    exchanges in chronological order, then new_messages as given.
    """
    window = conversation.kept_messages()
    groups = exchanges(conversation.rolling_messages())
    if pairs > 0:
        for group in groups[-pairs:]:
            window.extend(group)
    window.extend(new_messages)
    return window
