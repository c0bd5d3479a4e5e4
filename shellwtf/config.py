from __future__ import annotations

import os
import shlex
import textwrap
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple

try:  # Python 3.11+
    import tomllib
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib  # type: ignore


MARKER_ENV = "WTF_FILE"
HOME_ENV = "SHELLWTF_HOME"
RECORDER_BACKENDS = ("pty", "script")

DEFAULT_CONFIG = {
    "history": {
        "lines": 100,
        "bytes_per_line": 80,
    },
    "code": {
        "extensions": [".py", ".sh"],
        "max_lines": 1000,
        "max_bytes": 8000,
    },
    "llm": {
        "command": "groq",
    },
    "recorder": {
        "backend": "pty",
        "shell": "",
    },
}


class ConfigError(ValueError):
    """Raised when config.toml holds a value shellwtf cannot use."""


@dataclass
class AppConfig:
    base_dir: Path
    config_path: Path
    context_lines: int
    bytes_per_line: int
    code_extensions: Tuple[str, ...]
    code_max_lines: int
    code_max_bytes: int
    llm_command: List[str]
    recorder_backend: str
    shell: List[str]

    @property
    def history_max_bytes(self) -> int:
        return self.context_lines * self.bytes_per_line


def _ensure_base_dir() -> Path:
    root = Path(os.environ.get(HOME_ENV, Path.home() / ".shellwtf"))
    root.mkdir(parents=True, exist_ok=True)
    return root


def _maybe_seed_config(config_path: Path) -> None:
    if config_path.exists():
        return
    template = textwrap.dedent(
        """
        [history]
        # Number of transcript lines handed to the LLM.
        lines = 100

        # Byte ceiling is lines * bytes_per_line, so one huge line cannot
        # crowd out the rest of the history.
        bytes_per_line = 80

        [code]
        # Files in the current directory with these suffixes are included.
        extensions = [".py", ".sh"]
        max_lines = 1000
        max_bytes = 8000

        [llm]
        # Command that reads a prompt on stdin and prints an answer. Example:
        # command = "llm -m gpt-4o-mini"
        command = "groq"

        [recorder]
        # "pty" records with the built-in pseudo-terminal recorder,
        # "script" delegates to the system `script` tool.
        backend = "pty"

        # Shell to record. Leave blank to use $SHELL.
        shell = ""
        """
    ).strip()
    config_path.write_text(template + "\n", encoding="utf-8")


def _load_config(path: Path) -> dict:
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"{path} is not valid TOML: {exc}")


def _section(data: dict, name: str) -> dict:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ConfigError(f"[{name}] must be a table, got {section!r}")
    return section


def _command(section: dict, key: str, name: str, default: str) -> List[str]:
    value = section.get(key, default)
    if isinstance(value, str):
        return shlex.split(value)
    if isinstance(value, list) and all(isinstance(part, str) for part in value):
        return list(value)
    raise ConfigError(f"{name}.{key} must be a string or a list of strings, got {value!r}")


def _positive_int(section: dict, key: str, name: str) -> int:
    value = section.get(key, DEFAULT_CONFIG[name][key])
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name}.{key} must be an integer, got {value!r}")
    if number <= 0:
        raise ConfigError(f"{name}.{key} must be positive, got {number}")
    return number


def _default_shell() -> List[str]:
    return [os.environ.get("SHELL") or "/bin/bash"]


def load_config() -> AppConfig:
    base = _ensure_base_dir()
    config_path = base / "config.toml"
    _maybe_seed_config(config_path)
    data = _load_config(config_path)

    history = _section(data, "history")
    code = _section(data, "code")
    llm_section = _section(data, "llm")
    recorder = _section(data, "recorder")

    llm_command = _command(llm_section, "command", "llm", DEFAULT_CONFIG["llm"]["command"])
    if not llm_command:
        raise ConfigError("llm.command must name a command-line LLM client")

    backend = recorder.get("backend", DEFAULT_CONFIG["recorder"]["backend"])
    if backend not in RECORDER_BACKENDS:
        raise ConfigError(
            f"recorder.backend must be one of {', '.join(RECORDER_BACKENDS)}, got {backend!r}"
        )
    shell = _command(recorder, "shell", "recorder", "")

    extensions = code.get("extensions", DEFAULT_CONFIG["code"]["extensions"])
    if isinstance(extensions, str):
        extensions = [extensions]
    if not isinstance(extensions, list) or not all(isinstance(ext, str) and ext for ext in extensions):
        raise ConfigError(f"code.extensions must be a list of suffixes, got {extensions!r}")
    normalized = tuple(ext if ext.startswith(".") else f".{ext}" for ext in extensions)

    return AppConfig(
        base_dir=base,
        config_path=config_path,
        context_lines=_positive_int(history, "lines", "history"),
        bytes_per_line=_positive_int(history, "bytes_per_line", "history"),
        code_extensions=normalized,
        code_max_lines=_positive_int(code, "max_lines", "code"),
        code_max_bytes=_positive_int(code, "max_bytes", "code"),
        llm_command=llm_command,
        recorder_backend=backend,
        shell=shell or _default_shell(),
    )


__all__ = [
    "AppConfig",
    "ConfigError",
    "MARKER_ENV",
    "load_config",
]
