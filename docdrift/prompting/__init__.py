"""Prompt and message rendering for external collaborators."""

from .builder import PromptBuilder

__all__ = ["PromptBuilder"]
