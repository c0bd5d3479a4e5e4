"""LLM integration through an external command-line client."""

import logging
import shutil
import subprocess
from typing import List, Optional, Sequence

logger = logging.getLogger(__name__)


class LLMError(Exception):
    """Raised when the LLM client cannot be started at all."""


class LLMClient:
    """Interface to an LLM via a CLI that reads the prompt on stdin."""

    def __init__(self, command: Sequence[str]):
        self.command: List[str] = list(command)

    @property
    def executable(self) -> Optional[str]:
        if not self.command:
            return None
        return shutil.which(self.command[0])

    def dispatch(self, prompt: str) -> int:
        """
        Send a prompt to the client and let it answer on the terminal.

        The client's stdout and stderr are inherited, so its answer (or its
        error) shows up exactly as the client prints it.

        Args:
            prompt: The assembled prompt document

        Returns:
            The client's exit code
        """
        if not self.command:
            raise LLMError("No LLM command configured")
        logger.debug("Dispatching %d characters to %s", len(prompt), " ".join(self.command))
        try:
            # surrogateescape: undecodable file names go out as their raw bytes.
            result = subprocess.run(self.command, input=prompt.encode("utf-8", "surrogateescape"))
        except FileNotFoundError:
            raise LLMError(f"LLM command not found: {self.command[0]}")
        except PermissionError:
            raise LLMError(f"LLM command is not executable: {self.command[0]}")
        logger.debug("%s exited with %d", self.command[0], result.returncode)
        return result.returncode


__all__ = ["LLMClient", "LLMError"]
