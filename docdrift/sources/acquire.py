"""Spec source variants and the acquisition step shared by every detector."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Tuple, Union

from ..errors import DocDriftError
from ..evidence.writer import EvidenceWriter
from .commands import CommandExecutor, format_command_log
from .fetch import FetchError, SpecFetcher


@dataclass(frozen=True)
class UrlSource:
    """Current spec is served over HTTP(S)."""

    url: str


@dataclass(frozen=True)
class LocalSource:
    """Current spec is a file (or folder) in the repository."""

    path: str


@dataclass(frozen=True)
class ExportSource:
    """Current spec is produced by a command that writes ``output_path``."""

    command: str
    output_path: str


SpecSource = Union[UrlSource, LocalSource, ExportSource]


@dataclass(frozen=True)
class AcquiredContent:
    content: str
    evidence_files: Tuple[str, ...] = ()
    transcript: str = ""


class AcquisitionError(DocDriftError):
    """Raised when the current side of a comparison cannot be obtained."""

    def __init__(self, message: str, *, transcript: str = "") -> None:
        super().__init__(message)
        self.transcript = transcript


def resolve_path(root: Path, relative: str) -> Path:
    path = Path(relative).expanduser()
    return path if path.is_absolute() else root / path


def acquire_text(
    source: SpecSource,
    *,
    root: Path,
    label: str,
    executor: CommandExecutor,
    fetcher: SpecFetcher,
    writer: EvidenceWriter,
    log_path: Path,
) -> AcquiredContent:
    """Return the raw text of ``source``.

    Export commands leave their transcript at ``log_path`` whether or not they
    succeed. Every failure is raised as ``AcquisitionError``.
    """
    if isinstance(source, UrlSource):
        try:
            return AcquiredContent(content=fetcher.get(source.url))
        except FetchError as exc:
            raise AcquisitionError(f"{label} fetch failed: {exc}") from exc

    if isinstance(source, LocalSource):
        path = resolve_path(root, source.path)
        if not path.is_file():
            raise AcquisitionError(f"{label} local path not found: {source.path}")
        return AcquiredContent(content=read_text(path, label))

    if isinstance(source, ExportSource):
        result = executor.run(source.command)
        transcript = format_command_log(result)
        writer.write(log_path, transcript)
        evidence = (str(log_path),)
        if not result.ok:
            detail = result.stderr.strip() or f"exit code {result.exit_code}"
            raise AcquisitionError(f"{label} export failed: {detail}", transcript=transcript)
        output = resolve_path(root, source.output_path)
        if not output.is_file():
            raise AcquisitionError(
                f"{label} export did not create: {source.output_path}",
                transcript=transcript,
            )
        return AcquiredContent(content=read_text(output, label), evidence_files=evidence, transcript=transcript)

    raise AcquisitionError(f"{label} has an unsupported source: {source!r}")


def read_text(path: Path, label: str) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise AcquisitionError(f"{label} could not read {path}: {exc}") from exc


__all__ = [
    "AcquiredContent",
    "AcquisitionError",
    "ExportSource",
    "LocalSource",
    "SpecSource",
    "UrlSource",
    "acquire_text",
    "read_text",
    "resolve_path",
]
