"""Persistence for state that must survive between runs."""

from .state import IdempotencyRecord, JsonStateRepository, StateLock, StateStore

__all__ = ["IdempotencyRecord", "JsonStateRepository", "StateLock", "StateStore"]
