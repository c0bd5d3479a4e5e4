from __future__ import annotations

import fcntl
import logging
import os
import pty
import select
import shlex
import signal
import struct
import subprocess
import sys
import tempfile
import termios
import tty
from pathlib import Path
from typing import BinaryIO, Dict, List, Optional, Sequence

from .config import MARKER_ENV

logger = logging.getLogger(__name__)

TEARDOWN_SIGNALS = (signal.SIGTERM, signal.SIGHUP)


def _set_nonblocking(fd: int) -> None:
    flags = fcntl.fcntl(fd, fcntl.F_GETFL)
    fcntl.fcntl(fd, fcntl.F_SETFL, flags | os.O_NONBLOCK)


def _winsize() -> bytes:
    try:
        packed = fcntl.ioctl(sys.stdin.fileno(), termios.TIOCGWINSZ, struct.pack("HHHH", 0, 0, 0, 0))
        return packed
    except OSError:
        return struct.pack("HHHH", 40, 160, 0, 0)


def create_transcript() -> Path:
    """Create an empty transcript file only the owner can read or write."""
    fd, name = tempfile.mkstemp(prefix="wtf-", suffix=".log")
    os.close(fd)
    os.chmod(name, 0o600)
    return Path(name)


def transcript_path(environ: Optional[Dict[str, str]] = None) -> Optional[Path]:
    env = os.environ if environ is None else environ
    value = env.get(MARKER_ENV)
    return Path(value) if value else None


class PtyRecorder:
    """Run a shell on a pseudo-terminal and copy everything it prints to a file."""

    def __init__(self) -> None:
        self.child_pid: Optional[int] = None
        self.master_fd: Optional[int] = None
        self._orig_tty = None
        self._sink: Optional[BinaryIO] = None

    def run(self, command: Sequence[str], transcript: Path) -> int:
        command = list(command)
        pid, master_fd = pty.fork()
        if pid == 0:
            self._exec_child(command)
        self.child_pid = pid
        self.master_fd = master_fd
        with open(transcript, "ab") as sink:
            self._sink = sink
            self._setup_terminal()
            try:
                self._loop()
            finally:
                self._restore_terminal()
                self._sink = None
                os.close(master_fd)
                self.master_fd = None
        _, status = os.waitpid(self.child_pid, 0)
        return os.waitstatus_to_exitcode(status)

    def _exec_child(self, command: List[str]) -> None:  # pragma: no cover - child process
        try:
            os.execvp(command[0], command)
        except OSError as exc:
            print(f"Unable to exec {command[0]}: {exc}", file=sys.stderr)
            os._exit(127)

    def _stdin_is_tty(self) -> bool:
        return os.isatty(sys.stdin.fileno())

    def _setup_terminal(self) -> None:
        assert self.master_fd is not None
        if self._stdin_is_tty():
            self._orig_tty = termios.tcgetattr(sys.stdin.fileno())
            tty.setraw(sys.stdin.fileno())
        _set_nonblocking(self.master_fd)
        signal.signal(signal.SIGWINCH, self._resize_pty)
        self._resize_pty()

    def _restore_terminal(self) -> None:
        if self._orig_tty:
            termios.tcsetattr(sys.stdin.fileno(), termios.TCSADRAIN, self._orig_tty)
            self._orig_tty = None
        signal.signal(signal.SIGWINCH, signal.SIG_DFL)

    def _resize_pty(self, *_args) -> None:
        if self.master_fd is None:
            return
        try:
            fcntl.ioctl(self.master_fd, termios.TIOCSWINSZ, _winsize())
        except OSError:
            pass

    def _record(self, data: bytes) -> None:
        os.write(sys.stdout.fileno(), data)
        if self._sink is not None:
            self._sink.write(data)
            self._sink.flush()

    def _loop(self) -> None:
        assert self.master_fd is not None
        stdin_fd = sys.stdin.fileno()
        watched = [self.master_fd, stdin_fd]
        while True:
            rlist, _, _ = select.select(watched, [], [])
            if stdin_fd in rlist:
                data = os.read(stdin_fd, 1024)
                if data:
                    os.write(self.master_fd, data)
                else:
                    watched.remove(stdin_fd)
            if self.master_fd in rlist:
                try:
                    data = os.read(self.master_fd, 1024)
                except BlockingIOError:
                    continue
                except OSError:
                    # EIO: the shell closed its side of the terminal.
                    break
                if not data:
                    break
                self._record(data)


class ScriptRecorder:
    """Delegate recording to the system `script` tool."""

    def __init__(self, executable: str = "script", platform: Optional[str] = None):
        self.executable = executable
        self.platform = platform or sys.platform

    def build_command(self, command: Sequence[str], transcript: Path) -> List[str]:
        if self.platform == "darwin" or "bsd" in self.platform:
            return [self.executable, "-q", "-F", str(transcript), *command]
        return [
            self.executable,
            "--quiet",
            "--flush",
            "--command",
            shlex.join(command),
            str(transcript),
        ]

    def run(self, command: Sequence[str], transcript: Path) -> int:
        argv = self.build_command(command, transcript)
        logger.debug("Running %s", shlex.join(argv))
        return subprocess.run(argv).returncode


def make_recorder(backend: str):
    if backend == "script":
        return ScriptRecorder()
    return PtyRecorder()


def _raise_exit(signum, _frame) -> None:
    raise SystemExit(128 + signum)


def record_session(shell: Sequence[str], recorder) -> int:
    """
    Record an interactive shell into a private transcript.

    The transcript path is exported as ``$WTF_FILE`` so that the nested shell
    (and `wtf` inside it) can find it. The file is removed when the shell
    exits, when this process is terminated or hung up on, or when the
    recorder fails.

    Returns:
        The shell's exit code, or 0 when the session is already recorded
    """
    existing = transcript_path()
    if existing is not None:
        logger.info("Session already recorded to %s", existing)
        return 0

    transcript = create_transcript()
    previous = {}
    try:
        for sig in TEARDOWN_SIGNALS:
            previous[sig] = signal.signal(sig, _raise_exit)
        os.environ[MARKER_ENV] = str(transcript)
        logger.debug("Recording %s to %s", shlex.join(shell), transcript)
        return recorder.run(shell, transcript)
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler if handler is not None else signal.SIG_DFL)
        os.environ.pop(MARKER_ENV, None)
        transcript.unlink(missing_ok=True)
        logger.debug("Removed transcript %s", transcript)


__all__ = [
    "PtyRecorder",
    "ScriptRecorder",
    "create_transcript",
    "make_recorder",
    "record_session",
    "transcript_path",
]
