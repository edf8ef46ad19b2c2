"""Git helpers for listing what changed between two revisions."""

from .diff import ChangedPathLister, RevisionRange

__all__ = ["ChangedPathLister", "RevisionRange"]
