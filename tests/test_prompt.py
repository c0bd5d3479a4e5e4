"""Tests for prompt assembly and the environment snapshot."""

import os

from shellwtf.context import EnvironmentSnapshot, environment_snapshot
from shellwtf.prompt import build_prompt


def _snapshot():
    return EnvironmentSnapshot(
        uname="Linux box 6.1.0 #1 SMP x86_64",
        cwd="/home/user/project",
        listing="app.py\nREADME.md",
    )


def test_prompt_layout():
    prompt = build_prompt(
        "$ python app.py\nbash: python: command not found\n",
        _snapshot(),
        "./app.py\nprint('hi')\n---\n",
    )

    assert prompt == (
        "Below is the last 100 lines of a shell session.\n"
        "Something bad happened that I'm trying to debug.\n"
        "Explain the problem and how to fix it at a beginner level working through any possible edge cases.\n"
        "If possible be concise (<10 lines), but maintain good markdown formatting and prefer markdown code blocks to inline code.\n"
        "Only provide help with the most recent error and ignore previous errors.\n"
        "```\n"
        "$ python app.py\n"
        "bash: python: command not found\n"
        "```\n"
        "In case it is helpful, here is some info about the system.\n"
        "Do not mention this info unless it is related to the problem.\n"
        "```\n"
        "$ uname -a\n"
        "Linux box 6.1.0 #1 SMP x86_64\n"
        "$ pwd\n"
        "/home/user/project\n"
        "$ ls\n"
        "app.py\n"
        "README.md\n"
        "```\n"
        "The contents of possibly relevant files include\n"
        "```\n"
        "./app.py\n"
        "print('hi')\n"
        "---\n"
        "```\n"
    )


def test_context_lines_are_reported():
    prompt = build_prompt("", _snapshot(), "", context_lines=25)
    assert prompt.startswith("Below is the last 25 lines of a shell session.\n")


def test_braces_in_history_are_kept():
    prompt = build_prompt("KeyError: '{name}'\n", _snapshot(), "")
    assert "KeyError: '{name}'\n```" in prompt


def test_environment_snapshot(tmp_path):
    (tmp_path / "b.txt").write_text("")
    (tmp_path / "a.py").write_text("")
    (tmp_path / ".env").write_text("")

    snapshot = environment_snapshot(tmp_path)

    assert snapshot.cwd == str(tmp_path)
    assert snapshot.listing == "a.py\nb.txt"
    assert snapshot.uname.startswith(os.uname().sysname)
    assert os.uname().machine in snapshot.uname


def test_environment_snapshot_defaults_to_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert environment_snapshot().cwd == os.getcwd()
