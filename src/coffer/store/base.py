from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional


class KeyValueStore(ABC):
    """String-keyed integer storage with an explicit flush.

    Writes are staged until `flush()` makes them durable; reads must already
    see staged values.
    """

    @abstractmethod
    def get_int(self, key: str) -> Optional[int]:
        ...

    @abstractmethod
    def set_int(self, key: str, value: int) -> None:
        ...

    @abstractmethod
    def has_key(self, key: str) -> bool:
        ...

    @abstractmethod
    def flush(self) -> None:
        ...

    def close(self) -> None:
        return None

    def __enter__(self):
        return self

    def __exit__(self, *exc) -> None:
        self.close()
