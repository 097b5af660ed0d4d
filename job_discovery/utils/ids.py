"""
Identifier generators injected into services that mint ids.
"""

import itertools
import uuid


class UuidGenerator:
    """Random ids, optionally prefixed (e.g. ``alert_3f2a...``)."""

    def __init__(self, prefix: str = ""):
        self.prefix = prefix

    def __call__(self) -> str:
        return f"{self.prefix}{uuid.uuid4().hex}"


class SequentialIdGenerator:
    """Deterministic ids: ``prefix1``, ``prefix2``, ..."""

    def __init__(self, prefix: str = "id_", start: int = 1):
        self.prefix = prefix
        self._counter = itertools.count(start)

    def __call__(self) -> str:
        return f"{self.prefix}{next(self._counter)}"
