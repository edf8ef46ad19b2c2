"""Package a drift item's evidence into a directory and a gzipped tarball."""

from __future__ import annotations

import json
import re
import shutil
import tarfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from ..models import DriftItem, RunInfo

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


@dataclass(frozen=True)
class EvidenceBundle:
    bundle_dir: Path
    archive_path: Path
    manifest_path: Path
    attachment_paths: Tuple[Path, ...]


def build_evidence_bundle(
    run: RunInfo,
    item: DriftItem,
    evidence_root: Path,
    *,
    root: Optional[Path] = None,
) -> EvidenceBundle:
    """Copy evidence and impacted docs for ``item`` and archive them.

    Relative evidence and doc paths are resolved against ``root`` (the
    current directory when omitted). Missing files are skipped.
    """
    base = root or Path.cwd()
    bundle_dir = evidence_root / _safe_name(item.doc_area)
    evidence_dir = bundle_dir / "evidence"
    docs_dir = bundle_dir / "impacted_docs"
    evidence_dir.mkdir(parents=True, exist_ok=True)
    docs_dir.mkdir(parents=True, exist_ok=True)

    copied_evidence: List[str] = []
    for signal in item.signals:
        for evidence_path in signal.evidence:
            source = _resolve(base, evidence_path)
            destination = evidence_dir / _safe_name(source.name)
            if _copy_if_exists(source, destination):
                copied_evidence.append(destination.relative_to(bundle_dir).as_posix())

    copied_docs: List[str] = []
    for doc_path in item.impacted_docs:
        source = _resolve(base, doc_path)
        destination = docs_dir / _safe_name(doc_path)
        if _copy_if_exists(source, destination):
            copied_docs.append(destination.relative_to(bundle_dir).as_posix())

    manifest = {
        "run": {"runId": run.run_id, **run.to_dict()},
        "docArea": item.doc_area,
        "mode": item.mode.value,
        "summary": item.summary,
        "signals": [signal.to_dict() for signal in item.signals],
        "impactedDocs": list(item.impacted_docs),
        "copiedEvidence": copied_evidence,
        "copiedDocs": copied_docs,
    }
    manifest_path = bundle_dir / "manifest.json"
    manifest_path.write_text(json.dumps(manifest, indent=2) + "\n", encoding="utf-8")

    archive_path = bundle_dir.with_name(f"{bundle_dir.name}.tar.gz")
    with tarfile.open(archive_path, "w:gz") as archive:
        archive.add(bundle_dir, arcname=bundle_dir.name)

    return EvidenceBundle(
        bundle_dir=bundle_dir,
        archive_path=archive_path,
        manifest_path=manifest_path,
        attachment_paths=(archive_path, manifest_path),
    )


def _safe_name(value: str) -> str:
    return _UNSAFE_CHARS.sub("_", value)


def _resolve(base: Path, value: str) -> Path:
    path = Path(value)
    return path if path.is_absolute() else base / path


def _copy_if_exists(source: Path, destination: Path) -> bool:
    if not source.is_file():
        return False
    shutil.copyfile(source, destination)
    return True


__all__ = ["EvidenceBundle", "build_evidence_bundle"]
