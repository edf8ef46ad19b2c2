"""Exception hierarchy shared across docdrift components."""

from __future__ import annotations


class DocDriftError(RuntimeError):
    """Base class for errors raised by docdrift."""


class ConfigError(DocDriftError):
    """Raised when docdrift.yaml is missing or has an invalid shape."""


class UnknownFormatError(ConfigError):
    """Raised when a spec provider names a format with no registered detector."""


class StateError(DocDriftError):
    """Raised when the persisted state file cannot be read or written."""


class StateLockedError(StateError):
    """Raised when another process holds the state lock."""


class DecisionNotRecordableError(StateError):
    """Raised when a decision has no outcome to record or was already recorded."""


class GitError(DocDriftError):
    """Raised when git cannot produce the requested revision data."""


__all__ = [
    "ConfigError",
    "DecisionNotRecordableError",
    "DocDriftError",
    "GitError",
    "StateError",
    "StateLockedError",
    "UnknownFormatError",
]
