"""Artifact writing as an injected capability."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Protocol


class EvidenceWriter(Protocol):
    """Writes a text artifact and returns where it landed."""

    def write(self, path: Path, content: str) -> Path:
        ...


class FileEvidenceWriter:
    """Writes artifacts to disk, creating parent directories as needed."""

    def write(self, path: Path, content: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path


class MemoryEvidenceWriter:
    """Keeps artifacts in memory; handy when no filesystem is wanted."""

    def __init__(self) -> None:
        self.files: Dict[str, str] = {}

    def write(self, path: Path, content: str) -> Path:
        self.files[str(path)] = content
        return path

    def read(self, path: Path | str) -> str:
        return self.files[str(path)]


__all__ = ["EvidenceWriter", "FileEvidenceWriter", "MemoryEvidenceWriter"]
