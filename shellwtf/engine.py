from __future__ import annotations

import logging
import os
from typing import Dict, Optional

from .capture import transcript_path
from .config import MARKER_ENV, AppConfig
from .context import environment_snapshot, gather_code_context, read_history
from .llm import LLMClient
from .prompt import build_prompt

logger = logging.getLogger(__name__)


class DebugEngine:
    def __init__(
        self,
        config: AppConfig,
        llm_client: Optional[LLMClient] = None,
        environ: Optional[Dict[str, str]] = None,
    ):
        self.config = config
        self.llm = llm_client or LLMClient(config.llm_command)
        self.environ = os.environ if environ is None else environ

    def build_prompt(self, directory: Optional[str] = None) -> str:
        cwd = directory if directory is not None else os.getcwd()
        transcript = transcript_path(self.environ)
        if transcript is None:
            logger.warning(
                "$%s is not set; run `wtf record` (or `eval \"$(wtf shell)\"`) "
                "so the session history can be included",
                MARKER_ENV,
            )
        history = read_history(
            transcript,
            lines=self.config.context_lines,
            max_bytes=self.config.history_max_bytes,
        )
        code = gather_code_context(
            cwd,
            extensions=self.config.code_extensions,
            max_lines=self.config.code_max_lines,
            max_bytes=self.config.code_max_bytes,
        )
        snapshot = environment_snapshot(cwd)
        prompt = build_prompt(history, snapshot, code, context_lines=self.config.context_lines)
        logger.debug(
            "Built prompt: %d history bytes, %d code bytes, %d total characters",
            len(history.encode("utf-8")),
            len(code.encode("utf-8")),
            len(prompt),
        )
        return prompt

    def run(self, directory: Optional[str] = None) -> int:
        return self.llm.dispatch(self.build_prompt(directory))


__all__ = ["DebugEngine"]
