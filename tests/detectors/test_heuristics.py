"""Tests for the path-heuristic detector."""

from __future__ import annotations

from pathlib import Path

import pytest

from docdrift.config import DetectConfig, DocAreaConfig, PathRule
from docdrift.detectors.heuristics import detect_heuristic_impacts
from docdrift.evidence.writer import MemoryEvidenceWriter
from docdrift.models import DocAreaMode, SignalKind


@pytest.fixture
def guides_area() -> DocAreaConfig:
    return DocAreaConfig(
        name="guides",
        mode=DocAreaMode.CONCEPTUAL,
        detect=DetectConfig(
            paths=[
                PathRule(match="definition/**", impacts=("pages/guides/**",)),
                PathRule(match="packages/api/src/**", impacts=("pages/api.mdx", "pages/guides/auth.mdx")),
            ]
        ),
    )


def test_matching_paths_emit_signal(guides_area: DocAreaConfig, tmp_path: Path) -> None:
    writer = MemoryEvidenceWriter()

    result = detect_heuristic_impacts(
        guides_area,
        ["definition/users.yml", "packages/api/src/auth/login.ts"],
        tmp_path,
        writer=writer,
    )

    assert result.signal is not None
    assert result.signal.kind is SignalKind.HEURISTIC_PATH_IMPACT
    assert result.signal.tier == 2
    assert result.signal.confidence == pytest.approx(0.67)
    assert set(result.impacted_docs) == {"pages/guides/**", "pages/api.mdx", "pages/guides/auth.mdx"}
    assert result.summary == "Heuristic impacts detected (2 matches)"

    evidence = tmp_path / "guides.heuristics.txt"
    assert result.evidence_files == (str(evidence),)
    assert writer.read(evidence).splitlines() == [
        "definition/users.yml matched definition/** -> pages/guides/**",
        "packages/api/src/auth/login.ts matched packages/api/src/** -> pages/api.mdx, pages/guides/auth.mdx",
    ]


def test_unrelated_paths_produce_no_signal(guides_area: DocAreaConfig, tmp_path: Path) -> None:
    writer = MemoryEvidenceWriter()

    result = detect_heuristic_impacts(guides_area, ["src/utils/logger.ts", "README.md"], tmp_path, writer=writer)

    assert result.signal is None
    assert result.impacted_docs == ()
    assert result.summary == "No heuristic conceptual impacts"
    assert writer.files == {}


def test_area_without_rules(tmp_path: Path) -> None:
    area = DocAreaConfig(name="api", mode=DocAreaMode.AUTOGEN)

    result = detect_heuristic_impacts(area, ["src/app.py"], tmp_path, writer=MemoryEvidenceWriter())

    assert result.signal is None
    assert result.summary == "No heuristic rules configured"
