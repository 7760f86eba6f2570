"""Concurrency primitives package."""

from crisisline.infrastructure.concurrency.keyed_lock import KeyedLock

__all__ = ["KeyedLock"]
