import logging
from typing import Awaitable, Callable, Dict, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class IndexCache(Generic[T]):
    """
    In-memory store keyed by file index, at most one entry per index.

    Entries are written only after their producer has finished, so readers
    see either nothing or a complete value. There is no eviction; ``clear``
    is the only way entries leave the cache.

    Usage:
        images = IndexCache("image")
        buffer = await images.get_or_compute(index, lambda: render(index))
        images.clear()  # e.g. the viewport width changed
    """

    def __init__(self, name: str):
        self.name = name
        self._entries: Dict[int, T] = {}
        self._generation = 0

    def __contains__(self, index: int) -> bool:
        return index in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def generation(self) -> int:
        return self._generation

    def get(self, index: int) -> Optional[T]:
        return self._entries.get(index)

    def put(self, index: int, value: T) -> None:
        self._entries[index] = value

    def clear(self) -> None:
        """Drop every entry; computations already in flight will not store their result."""
        dropped = len(self._entries)
        self._entries.clear()
        self._generation += 1
        logger.debug("%s cache cleared (%d entries dropped)", self.name, dropped)

    async def get_or_compute(self, index: int, producer: Callable[[], Awaitable[T]]) -> T:
        if index in self._entries:
            logger.debug("%s cache hit for index %d", self.name, index)
            return self._entries[index]

        logger.debug("%s cache miss for index %d", self.name, index)
        generation = self._generation
        value = await producer()
        if generation == self._generation:
            # Concurrent producers for the same index: the last one to finish wins.
            self._entries[index] = value
        else:
            logger.debug("%s cache cleared while computing index %d, result not stored", self.name, index)
        return value
