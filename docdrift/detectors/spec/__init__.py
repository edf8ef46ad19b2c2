"""Spec-format drift detectors and the closed format registry."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, List

from ...config import SPEC_FORMATS
from ...errors import UnknownFormatError
from ...evidence.writer import EvidenceWriter
from ...sources.commands import CommandExecutor
from ...sources.fetch import SpecFetcher
from .base import MalformedSpecError, SpecDriftDetector, SpecFormat
from .fern import FernFormat
from .graphql import GraphQLFormat
from .openapi import OpenApi3Format, Swagger2Format
from .postman import PostmanFormat

_REGISTRY: Dict[str, Callable[[], SpecFormat]] = {
    "openapi3": OpenApi3Format,
    "swagger2": Swagger2Format,
    "graphql": GraphQLFormat,
    "fern": FernFormat,
    "postman": PostmanFormat,
}

if tuple(_REGISTRY) != SPEC_FORMATS:  # pragma: no cover - import-time sanity check
    raise RuntimeError("Spec format registry is out of sync with SPEC_FORMATS")


def supported_formats() -> List[str]:
    return list(_REGISTRY)


def get_spec_format(key: str) -> SpecFormat:
    factory = _REGISTRY.get(key)
    if factory is None:
        supported = ", ".join(_REGISTRY)
        raise UnknownFormatError(f"Unknown spec format: {key} (supported: {supported})")
    return factory()


def get_spec_detector(
    key: str,
    *,
    root: Path,
    executor: CommandExecutor | None = None,
    fetcher: SpecFetcher | None = None,
    writer: EvidenceWriter | None = None,
) -> SpecDriftDetector:
    """Build the detector for ``key``; unknown keys raise ``UnknownFormatError``."""
    return SpecDriftDetector(
        get_spec_format(key),
        root=root,
        executor=executor,
        fetcher=fetcher,
        writer=writer,
    )


__all__ = [
    "MalformedSpecError",
    "SpecDriftDetector",
    "SpecFormat",
    "get_spec_detector",
    "get_spec_format",
    "supported_formats",
]
