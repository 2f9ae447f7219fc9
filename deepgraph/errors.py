"""Exceptions raised by the analysis engine."""

from __future__ import annotations


class DeepgraphError(Exception):
    """Base class for all deepgraph errors."""


class RootPathError(DeepgraphError):
    """The project root does not exist or is not a directory."""

    def __init__(self, path: str):
        super().__init__(f"project root not found: {path}")
        self.path = path


class SequencingError(DeepgraphError, RuntimeError):
    """A phase was invoked before the phases it depends on produced data."""


class AnalysisCancelled(DeepgraphError):
    """Raised at a cancellation checkpoint once the run has been cancelled."""


class LockfileParseError(DeepgraphError, ValueError):
    """A lock file could not be parsed."""

    def __init__(self, message: str, line: int = 0):
        if line:
            message = f"line {line}: {message}"
        super().__init__(message)
        self.line = line
