"""Privileged API keys that exempt callers from rate limiting."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol


class KeyStore(Protocol):
    def has(self, key: str) -> bool: ...


class StaticKeyStore:
    """Key store backed by a fixed set, typically parsed from API_KEYS."""

    def __init__(self, keys: Iterable[str] = ()) -> None:
        self._keys = frozenset(keys)

    def has(self, key: str) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)
