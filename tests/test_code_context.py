"""Tests for collecting nearby source files."""

import os

import pytest

from shellwtf.context import code_files, gather_code_context


@pytest.fixture
def project(tmp_path):
    (tmp_path / "app.py").write_text("print('hi')\n")
    (tmp_path / "build.sh").write_text("echo building")
    (tmp_path / ".hidden.py").write_text("SECRET = 1\n")
    (tmp_path / "notes.txt").write_text("not code\n")
    sub = tmp_path / "pkg"
    sub.mkdir()
    (sub / "nested.py").write_text("NESTED = True\n")
    (tmp_path / "dir.py").mkdir()
    return tmp_path


def test_formats_matching_files_in_name_order(project):
    context = gather_code_context(project)

    assert context == (
        "./app.py\nprint('hi')\n---\n"
        "./build.sh\necho building\n---\n"
    )


def test_hidden_and_other_extensions_are_excluded(project):
    context = gather_code_context(project)

    assert ".hidden.py" not in context
    assert "SECRET" not in context
    assert "notes.txt" not in context
    assert "not code" not in context


def test_subdirectories_are_not_scanned(project):
    context = gather_code_context(project)

    assert "nested.py" not in context
    assert "dir.py" not in context


def test_symlinks_are_skipped(project, tmp_path_factory):
    outside = tmp_path_factory.mktemp("outside") / "target.py"
    outside.write_text("LINKED = 1\n")
    os.symlink(outside, project / "link.py")

    assert "LINKED" not in gather_code_context(project)


def test_custom_extensions(project):
    (project / "main.rb").write_text("puts 1\n")
    context = gather_code_context(project, extensions=(".rb",))

    assert context == "./main.rb\nputs 1\n---\n"


def test_byte_ceiling_applies_to_concatenation(tmp_path):
    for name in ("a.py", "b.py", "c.py"):
        (tmp_path / name).write_text("# " + "z" * 5000 + "\n")

    context = gather_code_context(tmp_path)

    assert len(context.encode("utf-8")) <= 8000
    assert context.startswith("./a.py\n")
    assert "./c.py" not in context


def test_line_ceiling_applies_to_concatenation(tmp_path):
    (tmp_path / "long.py").write_text("x = 1\n" * 3000)
    (tmp_path / "zlater.sh").write_text("echo later\n")

    context = gather_code_context(tmp_path)

    assert context.count("\n") == 1000
    assert "later" not in context


@pytest.mark.parametrize("max_lines,max_bytes", [(5, 8000), (1000, 64), (3, 10)])
def test_ceilings_hold_for_custom_limits(tmp_path, max_lines, max_bytes):
    for i in range(20):
        (tmp_path / f"mod{i:02d}.py").write_text("value = %d\n" % i * 40)

    context = gather_code_context(tmp_path, max_lines=max_lines, max_bytes=max_bytes)

    assert context.count("\n") <= max_lines
    assert len(context.encode("utf-8")) <= max_bytes


def test_empty_directory_gives_empty_context(tmp_path):
    assert gather_code_context(tmp_path) == ""


def test_code_files_lists_names_and_sizes(project):
    assert code_files(project, (".py", ".sh")) == [("app.py", 12), ("build.sh", 13)]


def test_unreadable_directory_gives_empty_context(tmp_path, monkeypatch, caplog):
    def denied(path):
        raise PermissionError(13, "Permission denied", str(path))

    monkeypatch.setattr("shellwtf.context.os.scandir", denied)

    with caplog.at_level("WARNING", logger="shellwtf"):
        assert gather_code_context(tmp_path) == ""
        assert code_files(tmp_path, (".py",)) == []

    assert "Permission denied" in caplog.text
