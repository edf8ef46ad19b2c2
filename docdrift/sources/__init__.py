"""Acquisition of "current" specification content from its configured source."""

from .acquire import (
    AcquiredContent,
    AcquisitionError,
    ExportSource,
    LocalSource,
    SpecSource,
    UrlSource,
    acquire_text,
)
from .commands import CommandExecutor, CommandResult, format_command_log
from .fetch import FetchError, SpecFetcher

__all__ = [
    "AcquiredContent",
    "AcquisitionError",
    "CommandExecutor",
    "CommandResult",
    "ExportSource",
    "FetchError",
    "LocalSource",
    "SpecFetcher",
    "SpecSource",
    "UrlSource",
    "acquire_text",
    "format_command_log",
]
