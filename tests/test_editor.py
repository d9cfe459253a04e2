from __future__ import annotations

import subprocess

import pytest

from ducky.editor import open_editor
from ducky.errors import ConfigError


def fake_editor(monkeypatch, write: str, returncode: int = 0):
    calls = []

    def run(cmd, *args, **kwargs):
        calls.append(cmd)
        with open(cmd[-1], "a", encoding="utf-8") as f:
            f.write(write)
        return subprocess.CompletedProcess(cmd, returncode)

    monkeypatch.setattr("ducky.editor.subprocess.run", run)
    return calls


def test_returns_edited_text(monkeypatch):
    monkeypatch.setenv("EDITOR", "nano -w")
    monkeypatch.delenv("VISUAL", raising=False)
    calls = fake_editor(monkeypatch, "What is a monad?")
    assert open_editor("") == "What is a monad?"
    assert calls[0][:2] == ["nano", "-w"]


def test_visual_wins_over_editor(monkeypatch):
    monkeypatch.setenv("VISUAL", "code --wait")
    monkeypatch.setenv("EDITOR", "vi")
    calls = fake_editor(monkeypatch, "x")
    open_editor("")
    assert calls[0][0] == "code"


def test_blank_result_aborts(monkeypatch):
    fake_editor(monkeypatch, "  \n")
    with pytest.raises(ConfigError):
        open_editor("")


def test_failing_editor_aborts(monkeypatch):
    fake_editor(monkeypatch, "text", returncode=1)
    with pytest.raises(ConfigError):
        open_editor("")
