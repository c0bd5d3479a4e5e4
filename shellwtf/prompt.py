from __future__ import annotations

from .context import EnvironmentSnapshot

FENCE = "```"

PROMPT_TEMPLATE = """\
Below is the last {context_lines} lines of a shell session.
Something bad happened that I'm trying to debug.
Explain the problem and how to fix it at a beginner level working through any possible edge cases.
If possible be concise (<10 lines), but maintain good markdown formatting and prefer markdown code blocks to inline code.
Only provide help with the most recent error and ignore previous errors.
{fence}
{history}
{fence}
In case it is helpful, here is some info about the system.
Do not mention this info unless it is related to the problem.
{fence}
$ uname -a
{uname}
$ pwd
{cwd}
$ ls
{listing}
{fence}
The contents of possibly relevant files include
{fence}
{code_files}
{fence}
"""


def _strip(value: str) -> str:
    # Same as shell command substitution: trailing newlines go away.
    return value.rstrip("\n")


def build_prompt(
    history: str,
    snapshot: EnvironmentSnapshot,
    code_files: str,
    context_lines: int = 100,
) -> str:
    return PROMPT_TEMPLATE.format(
        context_lines=context_lines,
        fence=FENCE,
        history=_strip(history),
        uname=_strip(snapshot.uname),
        cwd=_strip(snapshot.cwd),
        listing=_strip(snapshot.listing),
        code_files=_strip(code_files),
    )


__all__ = ["build_prompt", "PROMPT_TEMPLATE"]
