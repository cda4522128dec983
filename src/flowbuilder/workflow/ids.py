"""Injectable identifier generators for packages and webhook paths."""

from __future__ import annotations

import itertools
import uuid
from typing import Protocol


class IdGenerator(Protocol):
    def new_id(self, prefix: str) -> str: ...


class UuidIdGenerator:
    """Random identifiers for production use."""

    def new_id(self, prefix: str) -> str:
        return f"{prefix}-{uuid.uuid4().hex[:12]}"


class SequentialIdGenerator:
    """Deterministic ``prefix-1``, ``prefix-2``, ... identifiers for tests."""

    def __init__(self, start: int = 1):
        self._counter = itertools.count(start)

    def new_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._counter)}"
