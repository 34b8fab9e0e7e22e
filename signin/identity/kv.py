from abc import ABC, abstractmethod
from logging import getLogger
from typing import override


class KV(ABC):
    @abstractmethod
    def get(self, key: str) -> str | None:
        pass

    @abstractmethod
    def set(self, key: str, value: str):
        pass

    @abstractmethod
    def delete(self, key: str):
        """Removes the key. Missing keys are ignored."""
        pass


class MemoryKV(KV):
    """Process local storage, mostly useful for scripts and tests."""

    logger = getLogger(__name__)

    def __init__(self, initial: dict[str, str] | None = None):
        self.values: dict[str, str] = dict(initial or {})

    @override
    def get(self, key: str) -> str | None:
        return self.values.get(key)

    @override
    def set(self, key: str, value: str):
        self.logger.debug(f"MemoryKV set({key})")
        self.values[key] = value

    @override
    def delete(self, key: str):
        self.logger.debug(f"MemoryKV delete({key})")
        _ = self.values.pop(key, None)
