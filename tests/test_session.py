from __future__ import annotations

import pathlib

import pytest

from conftest import FakeClient, api_failure
from ducky.context import Context
from ducky.errors import ApiError, ConfigError, HistoryNotSavedError, StoreError
from ducky.identity import ConversationIdentity, resolve
from ducky.models import Message, Role
from ducky.session import Session


def test_first_turn_persists_prompt_and_reply(session, store, client):
    client.replies = ["Hi there"]
    ident = ConversationIdentity.global_("default")

    assert session.run_turn(ident, "Hello") == "Hi there"
    assert client.calls == [{"model": "gpt-test", "messages": [{"role": "user", "content": "Hello"}]}]
    assert store.load(ident).messages == [
        Message(role=Role.user, content="Hello", kept=False),
        Message(role=Role.assistant, content="Hi there", kept=False),
    ]


def test_window_slides_over_prior_turns(session, store, client):
    ident = ConversationIdentity.global_("w")
    session.run_turn(ident, "q0", system_msg="You are terse.")
    for i in range(1, 6):
        session.run_turn(ident, f"q{i}")
    session.run_turn(ident, "last")

    sent = client.calls[-1]["messages"]
    assert len(sent) == 8
    assert sent[0] == {"role": "system", "content": "You are terse."}
    assert [m["content"] for m in sent[1:7:2]] == ["q3", "q4", "q5"]
    assert sent[-1] == {"role": "user", "content": "last"}


def test_system_and_kept_messages_are_folded_back_as_kept(session, store, client):
    ident = ConversationIdentity.global_("k")
    session.run_turn(ident, "prompt", system_msg="sys", kept_msgs=["fact a", "fact b"])

    assert client.calls[0]["messages"] == [
        {"role": "system", "content": "sys"},
        {"role": "user", "content": "fact a"},
        {"role": "user", "content": "fact b"},
        {"role": "user", "content": "prompt"},
    ]
    conv = store.load(ident)
    assert [m.content for m in conv.kept_messages()] == ["sys", "fact a", "fact b"]
    assert [m.content for m in conv.rolling_messages()] == ["prompt", "reply 1"]


def test_api_failure_leaves_history_untouched(session, store, client):
    ident = ConversationIdentity.global_("atomic")
    session.run_turn(ident, "first")
    before = store.load(ident)

    client.replies = [api_failure()]
    with pytest.raises(ApiError) as info:
        session.run_turn(ident, "second", kept_msgs=["should not stick"], engine_override="gpt-4")
    assert info.value.status == 500
    assert store.load(ident) == before


def test_save_failure_still_returns_reply(session, client, monkeypatch):
    def boom(conversation):
        raise StoreError("disk full")

    monkeypatch.setattr(session.store, "save", boom)
    client.replies = ["answer"]
    with pytest.raises(HistoryNotSavedError) as info:
        session.run_turn(ConversationIdentity.global_("x"), "q")
    assert info.value.reply == "answer"


def test_load_failure_aborts_before_calling_api(session, store, client):
    ident = ConversationIdentity.global_("corrupt")
    path = store.path_for(ident)
    path.parent.mkdir(parents=True)
    path.write_text("garbage")
    with pytest.raises(StoreError):
        session.run_turn(ident, "hello")
    assert client.calls == []


def test_engine_override_is_recorded_and_reused(session, store, client):
    ident = ConversationIdentity.global_("engine")
    session.run_turn(ident, "one", engine_override="gpt-4")
    session.run_turn(ident, "two")
    session.run_turn(ident, "three", engine_override="gpt-4o")

    assert [c["model"] for c in client.calls] == ["gpt-4", "gpt-4", "gpt-4o"]
    assert store.load(ident).engine == "gpt-4o"


def test_window_override_is_recorded(session, store, client):
    ident = ConversationIdentity.global_("narrow")
    session.run_turn(ident, "a", window_override=1)
    session.run_turn(ident, "b")
    session.run_turn(ident, "c")
    assert [m["content"] for m in client.calls[-1]["messages"]] == ["b", "reply 2", "c"]
    assert store.load(ident).window_pairs == 1


def test_stored_history_is_capped(home, store, client):
    from ducky.settings import build_config

    cfg = build_config(home=home, settings={}, model="m", history_pairs=2)
    s = Session(cfg, store, client, Context())
    ident = ConversationIdentity.global_("capped")
    s.run_turn(ident, "q0", kept_msgs=["k"])
    for i in range(1, 5):
        s.run_turn(ident, f"q{i}")
    contents = [m.content for m in store.load(ident).messages]
    assert contents == ["k", "q3", "reply 4", "q4", "reply 5"]


def test_empty_prompt_is_rejected(session, client):
    with pytest.raises(ConfigError):
        session.run_turn(ConversationIdentity.global_("x"), "   ")
    assert client.calls == []


def test_local_conversations_are_separate_from_global(session, store, client, repo: pathlib.Path):
    session.run_turn(resolve(":notes", repo), "local question")
    session.run_turn(resolve("notes", repo), "global question")
    assert [m.content for m in store.load(resolve(":notes", repo)).messages] == ["local question", "reply 1"]
    assert [m.content for m in store.load(resolve("notes", None)).messages] == ["global question", "reply 2"]


def test_ephemeral_session_never_touches_disk(config, store):
    client = FakeClient()
    s = Session(config, store, client, Context(), ephemeral=True)
    ident = ConversationIdentity.global_("scratch")
    s.run_turn(ident, "one")
    s.run_turn(ident, "two")
    assert client.calls[-1]["messages"] == [
        {"role": "user", "content": "one"},
        {"role": "assistant", "content": "reply 1"},
        {"role": "user", "content": "two"},
    ]
    assert not store.root.exists()


def test_repl_widens_window_for_the_live_session(home, store, capsys):
    from ducky.settings import build_config

    cfg = build_config(home=home, settings={}, model="m", window_pairs=1)
    client = FakeClient()
    s = Session(cfg, store, client, Context())
    ident = ConversationIdentity.global_("repl")
    s.run_turn(ident, "old0")
    s.run_turn(ident, "old1")

    turns = s.repl(ident, ["first\n", "\n", "second\n", "third\n", "quit\n", "ignored\n"], system_msg="sys")
    assert turns == 3
    # base window of one exchange plus the two turns already taken in this session
    assert [m["content"] for m in client.calls[-1]["messages"]] == [
        "sys", "old1", "reply 2", "first", "reply 3", "second", "reply 4", "third",
    ]
    out = capsys.readouterr().out
    assert "---\nreply 5\n---" in out


def test_repl_reports_api_errors_and_continues(session, client, capsys):
    client.replies = [api_failure(), "fine"]
    turns = session.repl(ConversationIdentity.global_("r"), ["a", "b"])
    assert turns == 1
    captured = capsys.readouterr()
    assert "API error 500" in captured.err
    assert "fine" in captured.out


@pytest.mark.parametrize("prompt, reply", [("q", "bad \ud800 reply"), ("hi \udcff there", "fine")])
def test_unencodable_text_still_returns_reply(session, store, client, prompt, reply):
    client.replies = [reply]
    ident = ConversationIdentity.global_("surrogates")
    with pytest.raises(HistoryNotSavedError) as info:
        session.run_turn(ident, prompt)
    assert info.value.reply == reply
    assert not store.exists(ident)


def test_ephemeral_conversations_with_colons_stay_apart(config, store, tmp_path: pathlib.Path):
    client = FakeClient()
    s = Session(config, store, client, Context(), ephemeral=True)
    first = ConversationIdentity.local(tmp_path / "a:b", "c")
    second = ConversationIdentity.local(tmp_path / "a", "b:c")
    s.run_turn(first, "to first")
    s.run_turn(second, "to second")
    assert client.calls[-1]["messages"] == [{"role": "user", "content": "to second"}]
