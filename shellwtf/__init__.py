"""
shellwtf package

Records interactive terminal sessions and explains the most recent error by
piping the transcript tail, some environment facts and nearby source files
to a command-line LLM client.
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
