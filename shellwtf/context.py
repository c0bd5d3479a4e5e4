"""Collect the pieces of a debugging prompt: transcript tail, code, environment."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]

_BLOCK_SIZE = 8192


@dataclass
class EnvironmentSnapshot:
    uname: str
    cwd: str
    listing: str


def _tail_lines(data: bytes, lines: int) -> bytes:
    """Return the last ``lines`` lines of ``data`` the way ``tail -n`` does."""
    if lines <= 0:
        return b""
    end = len(data) - 1 if data.endswith(b"\n") else len(data)
    idx = end
    for _ in range(lines):
        idx = data.rfind(b"\n", 0, idx)
        if idx < 0:
            return data
    return data[idx + 1 :]


def _read_tail(path: Path, lines: int) -> bytes:
    # Only the end of the transcript matters, and it can grow without bound.
    with open(path, "rb") as fh:
        fh.seek(0, os.SEEK_END)
        pos = fh.tell()
        buf = b""
        while pos > 0 and buf.count(b"\n") <= lines:
            step = min(_BLOCK_SIZE, pos)
            pos -= step
            fh.seek(pos)
            buf = fh.read(step) + buf
    return buf


def read_history(
    path: Optional[PathLike],
    lines: int = 100,
    max_bytes: Optional[int] = None,
) -> str:
    """
    Read the recent tail of a session transcript.

    Truncates to the last ``lines`` lines, then to the last ``max_bytes``
    bytes (default ``lines * 80``), then drops null bytes left behind by the
    recorder. Terminal escape sequences are kept.

    Args:
        path: Transcript file, usually the value of ``$WTF_FILE``
        lines: Maximum number of lines to keep
        max_bytes: Maximum number of bytes to keep

    Returns:
        The history as text, or an empty string if there is no transcript
    """
    if max_bytes is None:
        max_bytes = lines * 80
    if not path:
        return ""
    try:
        data = _read_tail(Path(path), lines)
    except OSError as exc:
        logger.warning("Unable to read transcript %s: %s", path, exc)
        return ""
    data = _tail_lines(data, lines)
    if max_bytes <= 0:
        return ""
    data = data[-max_bytes:]
    data = data.replace(b"\x00", b"")
    return data.decode("utf-8", errors="ignore")


def iter_source_files(directory: PathLike, extensions: Iterable[str]) -> List[Path]:
    suffixes = tuple(extensions)
    matches: List[Path] = []
    try:
        with os.scandir(directory) as entries:
            for entry in entries:
                if entry.name.startswith("."):
                    continue
                if not entry.is_file(follow_symlinks=False):
                    continue
                if not entry.name.endswith(suffixes):
                    continue
                matches.append(Path(entry.path))
    except OSError as exc:
        logger.warning("Unable to scan %s for source files: %s", directory, exc)
        return []
    return sorted(matches, key=lambda p: p.name)


def _head(data: bytes, max_lines: int, max_bytes: int) -> bytes:
    if max_lines <= 0 or max_bytes <= 0:
        return b""
    idx = -1
    for _ in range(max_lines):
        idx = data.find(b"\n", idx + 1)
        if idx < 0:
            break
    else:
        data = data[: idx + 1]
    return data[:max_bytes]


def gather_code_context(
    directory: PathLike,
    extensions: Iterable[str] = (".py", ".sh"),
    max_lines: int = 1000,
    max_bytes: int = 8000,
) -> str:
    """
    Concatenate nearby source files as ``./name``, contents, ``---``.

    Only the top level of ``directory`` is scanned. The limits apply to the
    concatenated text, so large files early in name order can push later
    files out entirely.
    """
    chunks: List[bytes] = []
    for path in iter_source_files(directory, extensions):
        try:
            contents = path.read_bytes()
        except OSError as exc:
            logger.warning("Skipping %s: %s", path.name, exc)
            continue
        if contents and not contents.endswith(b"\n"):
            contents += b"\n"
        chunks.append(b"./" + os.fsencode(path.name) + b"\n" + contents + b"---\n")
        # Everything past the byte ceiling would be cut anyway.
        if sum(len(c) for c in chunks) > max_bytes:
            break
    data = _head(b"".join(chunks), max_lines, max_bytes)
    return data.decode("utf-8", errors="ignore")


def code_files(directory: PathLike, extensions: Iterable[str]) -> List[Tuple[str, int]]:
    """Name and size of every file that qualifies for the code context."""
    return [(p.name, p.stat().st_size) for p in iter_source_files(directory, extensions)]


def _uname() -> str:
    info = os.uname()
    return " ".join([info.sysname, info.nodename, info.release, info.version, info.machine])


def environment_snapshot(directory: Optional[PathLike] = None) -> EnvironmentSnapshot:
    cwd = os.fspath(directory) if directory is not None else os.getcwd()
    try:
        names = sorted(name for name in os.listdir(cwd) if not name.startswith("."))
    except OSError as exc:
        logger.warning("Unable to list %s: %s", cwd, exc)
        names = []
    return EnvironmentSnapshot(uname=_uname(), cwd=cwd, listing="\n".join(names))


__all__ = [
    "EnvironmentSnapshot",
    "environment_snapshot",
    "gather_code_context",
    "read_history",
]
