"""
Time-bounded memoization of the loaded corpus.

One CorpusCache is built per process and handed to whoever needs the corpus.
Reloads are wholesale and not locked: two requests racing past expiry may
both reload, which only wastes work because loading is idempotent.
"""

import asyncio
import logging
import time
from typing import Callable, List, Optional

from .models import DocumentChunk

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300  # 5 minutes


class CorpusCache:
    """Memoize `loader()` for `ttl_seconds`.

    Args:
        loader: Zero-argument callable returning the corpus.
        ttl_seconds: Lifetime of a loaded corpus.
        clock: Monotonic time source in seconds, injectable for tests.
    """

    def __init__(
        self,
        loader: Callable[[], List[DocumentChunk]],
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._loader = loader
        self._ttl = ttl_seconds
        self._clock = clock
        self._corpus: Optional[List[DocumentChunk]] = None
        self._loaded_at: Optional[float] = None

    @property
    def loaded_at(self) -> Optional[float]:
        return self._loaded_at

    def age(self) -> Optional[float]:
        """Seconds since the last load, or None if nothing is cached."""
        if self._loaded_at is None:
            return None
        return self._clock() - self._loaded_at

    def is_fresh(self) -> bool:
        age = self.age()
        return self._corpus is not None and age is not None and age < self._ttl

    def get(self) -> List[DocumentChunk]:
        """Return the cached corpus, reloading it if missing or expired."""
        if self.is_fresh():
            return self._corpus

        now = self._clock()
        corpus = self._loader()
        self._corpus = corpus
        self._loaded_at = now
        logger.info(f"[CACHE] Corpus loaded: {len(corpus)} chunks (ttl {self._ttl}s)")
        return corpus

    async def aget(self) -> List[DocumentChunk]:
        """get() for coroutines: a reload runs in the default executor."""
        if self.is_fresh():
            return self._corpus

        # Reading and parsing the JSON files blocks: keep it off the event loop
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self.get)

    def invalidate(self) -> None:
        """Drop the cached corpus; the next get() reloads."""
        self._corpus = None
        self._loaded_at = None
        logger.info("[CACHE] Corpus cache invalidated")
