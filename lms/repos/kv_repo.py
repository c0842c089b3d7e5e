"""Durable key-value port behind the entity store.

The store only needs two primitives: read a slot and write a slot.
Each slot holds one JSON document (a whole collection).

  InMemoryKeyValueRepo: process-local dict, used by tests and local dev.
  RedisKeyValueRepo:    shared by every API process; another process
                        writing a slot is what the store's periodic
                        refresh picks up.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class KeyValueRepo(Protocol):
    def get(self, key: str) -> str | None:
        """Fetch a slot.  Returns None when the slot was never written."""
        ...

    def set(self, key: str, value: str) -> None:
        """Overwrite a slot."""
        ...


class InMemoryKeyValueRepo:
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._store: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._store.get(key)

    def set(self, key: str, value: str) -> None:
        self._store[key] = value


class RedisKeyValueRepo:
    """Redis-backed slots, namespaced by a key prefix."""

    def __init__(self, redis_client, *, prefix: str = "lms:") -> None:
        self._redis = redis_client
        self._prefix = prefix

    def get(self, key: str) -> str | None:
        value = self._redis.get(f"{self._prefix}{key}")
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def set(self, key: str, value: str) -> None:
        self._redis.set(f"{self._prefix}{key}", value)
