"""Pytest configuration and shared fixtures."""
from __future__ import annotations

import pathlib
from typing import Dict, List, Optional, Sequence

import pytest

from ducky.context import Context
from ducky.errors import ApiError
from ducky.session import Session
from ducky.settings import build_config
from ducky.store import ConversationStore


class FakeClient:
    """Chat client double: records every request and answers from a queue."""

    def __init__(self, replies: Optional[List[object]] = None) -> None:
        self.replies = list(replies or [])
        self.calls: List[Dict[str, object]] = []

    def send(self, model: str, messages: Sequence[Dict[str, str]]) -> str:
        self.calls.append({"model": model, "messages": [dict(m) for m in messages]})
        reply = self.replies.pop(0) if self.replies else f"reply {len(self.calls)}"
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def home(tmp_path: pathlib.Path) -> pathlib.Path:
    d = tmp_path / "home"
    d.mkdir()
    return d


@pytest.fixture
def config(home: pathlib.Path):
    return build_config(home=home, settings={}, api_key="test-key", model="gpt-test", window_pairs=3)


@pytest.fixture
def store(home: pathlib.Path) -> ConversationStore:
    return ConversationStore(home)


@pytest.fixture
def client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def session(config, store, client) -> Session:
    return Session(config, store, client, Context())


@pytest.fixture
def repo(tmp_path: pathlib.Path) -> pathlib.Path:
    """A fake repository root with a nested subdirectory."""
    root = tmp_path / "work" / "project"
    (root / ".git").mkdir(parents=True)
    (root / "src" / "pkg").mkdir(parents=True)
    return root.resolve()


def api_failure() -> ApiError:
    return ApiError(500, "upstream exploded")
