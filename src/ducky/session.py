# ducky: Session orchestration: load, window, call the chat API, fold the reply back and persist.

import contextlib
from typing import Dict, Iterable, Iterator, Optional, Protocol, Sequence

from .context import Context
from .errors import ApiError, ConfigError, HistoryNotSavedError, StoreError
from .identity import ConversationIdentity
from .models import Conversation, Message, Role
from .settings import Config
from .store import ConversationStore
from .window import build_request_window, new_turn_messages


class ChatClient(Protocol):
    def send(self, model: str, messages: Sequence[Dict[str, str]]) -> str:
        ...


class Session:
    """
    Runs conversation turns against the chat API.

    Each turn is atomic: the conversation is only modified and saved after the
    API answered. In ephemeral mode conversations live in memory only.
    """

    def __init__(
        self,
        config: Config,
        store: ConversationStore,
        client: ChatClient,
        ctx: Optional[Context] = None,
        ephemeral: bool = False,
    ) -> None:
        self.config = config
        self.store = store
        self.client = client
        self.ctx = ctx or Context(config.verbose)
        self.ephemeral = ephemeral
        self._scratch: Dict[ConversationIdentity, Conversation] = {}

    def effective_engine(self, conversation: Conversation, engine_override: Optional[str] = None) -> str:
        return engine_override or conversation.engine or self.config.model

    def window_pairs(self, conversation: Conversation, session_turns: int = 0) -> int:
        base = conversation.window_pairs if conversation.window_pairs is not None else self.config.window_pairs
        return base + session_turns

    @contextlib.contextmanager
    def _guard(self, identity: ConversationIdentity) -> Iterator[None]:
        if self.ephemeral:
            yield
            return
        with self.store.lock(identity):
            yield

    def _load(self, identity: ConversationIdentity) -> Conversation:
        if self.ephemeral:
            held = self._scratch.get(identity)
            return held.model_copy(deep=True) if held else Conversation(identity=identity)
        return self.store.load(identity)

    def run_turn(
        self,
        identity: ConversationIdentity,
        prompt_text: str,
        system_msg: Optional[str] = None,
        kept_msgs: Sequence[str] = (),
        engine_override: Optional[str] = None,
        window_override: Optional[int] = None,
        session_turns: int = 0,
    ) -> str:
        """
        Run one turn and return the assistant's reply.

        Raises StoreError if the conversation cannot be loaded (before any API
        call), ApiError if the request fails (nothing is written), and
        HistoryNotSavedError, carrying the reply, if saving fails afterwards.
        """
        if not prompt_text or not prompt_text.strip():
            raise ConfigError("Empty prompt, aborting")
        if window_override is not None and window_override < 0:
            raise ConfigError("Window size must be zero or more")

        with self._guard(identity):
            conv = self._load(identity)
            if window_override is not None:
                conv.window_pairs = window_override

            new_messages = new_turn_messages(prompt_text, system_msg, kept_msgs)
            window = build_request_window(conv, new_messages, self.window_pairs(conv, session_turns))
            engine = self.effective_engine(conv, engine_override)
            self.ctx.log(
                f"Conversation {identity.describe()}: {len(conv.kept_messages())} kept, "
                f"{len(conv.rolling_messages())} rolling, sending {len(window)} message(s) to {engine}"
            )

            reply = self.client.send(engine, [m.to_wire() for m in window])

            conv.extend(new_messages)
            conv.append(Message(role=Role.assistant, content=reply))
            if engine_override:
                conv.engine = engine_override
            dropped = conv.prune(self.config.history_pairs)
            if dropped:
                self.ctx.log(f"Pruned {dropped} old message(s) from stored history")

            if self.ephemeral:
                self._scratch[identity] = conv
                return reply
            try:
                path = self.store.save(conv)
            except StoreError as e:
                raise HistoryNotSavedError(f"History was not saved: {e}", reply, e.path) from e
            self.ctx.log(f"Saved conversation to {path}")
        return reply

    def repl(
        self,
        identity: ConversationIdentity,
        lines: Iterable[str],
        system_msg: Optional[str] = None,
        kept_msgs: Sequence[str] = (),
        engine_override: Optional[str] = None,
        window_override: Optional[int] = None,
    ) -> int:
        """
        Run one turn per input line until EOF or "quit". Returns the number of completed turns.

        Every completed turn widens the window by one exchange so the live
        session stays in view. The system and kept messages go with the first
        turn only. API and save failures are reported and the loop goes on.
        """
        turns = 0
        for raw in lines:
            text = raw.strip()
            if not text:
                continue
            if text == "quit":
                break
            first = turns == 0
            try:
                reply = self.run_turn(
                    identity,
                    text,
                    system_msg=system_msg if first else None,
                    kept_msgs=kept_msgs if first else (),
                    engine_override=engine_override,
                    window_override=window_override if first else None,
                    session_turns=turns,
                )
            except ApiError as e:
                self.ctx.error_message(str(e))
                continue
            except HistoryNotSavedError as e:
                self.ctx.send_to_user(f"---\n{e.reply}\n---")
                self.ctx.error_message(str(e))
                turns += 1
                continue
            self.ctx.send_to_user(f"---\n{reply}\n---")
            turns += 1
        return turns
