"""Evidence artifacts written by detectors and bundled for collaborators."""

from .bundle import EvidenceBundle, build_evidence_bundle
from .writer import EvidenceWriter, FileEvidenceWriter, MemoryEvidenceWriter

__all__ = [
    "EvidenceBundle",
    "EvidenceWriter",
    "FileEvidenceWriter",
    "MemoryEvidenceWriter",
    "build_evidence_bundle",
]
