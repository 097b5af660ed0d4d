"""
Key-value persistence used by the tracker, alert engine and notification store.
"""

from abc import ABC, abstractmethod
from pathlib import Path
import asyncio
import copy
import json
import logging
import re


class KeyValueStore(ABC):
    """Opaque async key-value store holding JSON-compatible values."""

    @abstractmethod
    async def get(self, key: str, default=None):
        pass

    @abstractmethod
    async def set(self, key: str, value) -> None:
        pass

    @abstractmethod
    async def remove(self, key: str) -> None:
        pass


class MemoryStore(KeyValueStore):
    """In-process store; values are deep-copied on the way in and out."""

    def __init__(self):
        self._data: dict = {}

    async def get(self, key: str, default=None):
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    async def set(self, key: str, value) -> None:
        self._data[key] = copy.deepcopy(value)

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class JsonFileStore(KeyValueStore):
    """Stores each key as ``<directory>/<key>.json``."""

    def __init__(self, directory: str = "./job_discovery_data"):
        """
        Initialize the file store.

        Args:
            directory: Directory holding one JSON file per key
        """
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self.logger = logging.getLogger(self.__class__.__name__)

    def _path(self, key: str) -> Path:
        safe = re.sub(r'[^A-Za-z0-9_.-]', '_', key)
        return self.directory / f"{safe}.json"

    async def get(self, key: str, default=None):
        return await asyncio.to_thread(self._read, key, default)

    async def set(self, key: str, value) -> None:
        await asyncio.to_thread(self._write, key, value)

    async def remove(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            path.unlink()

    def _read(self, key: str, default):
        path = self._path(key)
        if not path.exists():
            return default

        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            self.logger.error(f"Corrupt store file {path}: {e}")
            return default

    def _write(self, key: str, value) -> None:
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")

        with open(tmp, 'w', encoding='utf-8') as f:
            json.dump(value, f, indent=2, default=str)

        tmp.replace(path)
