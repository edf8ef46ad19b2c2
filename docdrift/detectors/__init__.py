"""Drift detectors: spec formats, path heuristics and docs verification."""

from .docs_check import run_docs_checks
from .heuristics import detect_heuristic_impacts
from .spec import get_spec_detector, supported_formats

__all__ = [
    "detect_heuristic_impacts",
    "get_spec_detector",
    "run_docs_checks",
    "supported_formats",
]
