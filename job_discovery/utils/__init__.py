"""
Utility modules for the job discovery engine.
"""

from .config import Config, deep_merge
from .cache import SearchCache
from .storage import KeyValueStore, MemoryStore, JsonFileStore
from .throttle import HostThrottle
from .ids import UuidGenerator, SequentialIdGenerator

__all__ = [
    "Config",
    "deep_merge",
    "SearchCache",
    "KeyValueStore",
    "MemoryStore",
    "JsonFileStore",
    "HostThrottle",
    "UuidGenerator",
    "SequentialIdGenerator",
]
