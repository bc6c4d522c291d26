"""
Retriever module: picks the chunks that ground the chat answer.

Strategies are tried in precedence order, each inside its own timeout and
error boundary:

    1. agenda   - every congress/event chunk, only for "complete agenda" requests
    2. vector   - embedding similarity via ChromaDB
    3. lexical  - weighted keyword scoring over the cached corpus

The first strategy returning a non-empty list wins. Failures and timeouts
are logged and recorded, never raised to the caller.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from openai import AsyncOpenAI

from palmbot import config
from .cache import CorpusCache
from .context import assemble_context
from .lexical import search_documents, tokenize_query
from .models import DocumentChunk, ScoredChunk
from .vector import vector_search

logger = logging.getLogger(__name__)

AGENDA_CATEGORY = "eventos"
AGENDA_TOKENS = ("todo", "toda", "completa", "completo")
AGENDA_PHRASES = ("agenda completa", "día 23", "dia 23")


@dataclass
class SearchStrategy:
    """A named retrieval step. `run` returns ranked chunks."""
    name: str
    run: Callable[[], Awaitable[List[ScoredChunk]]]
    timeout: Optional[float] = None


@dataclass
class RetrievalResult:
    """Outcome of the fallback pipeline.

    Attributes:
        chunks: Ranked chunks from the winning strategy (empty if none won).
        strategy: Name of the winning strategy, None if every one came up empty.
        errors: Strategy name -> error description for failed strategies.
    """
    chunks: List[ScoredChunk] = field(default_factory=list)
    strategy: Optional[str] = None
    errors: Dict[str, str] = field(default_factory=dict)


async def run_with_fallback(strategies: Sequence[SearchStrategy]) -> RetrievalResult:
    """Run strategies in order until one returns results."""
    result = RetrievalResult()

    for strategy in strategies:
        try:
            if strategy.timeout is not None:
                chunks = await asyncio.wait_for(strategy.run(), timeout=strategy.timeout)
            else:
                chunks = await strategy.run()
        except asyncio.TimeoutError:
            result.errors[strategy.name] = f"timeout after {strategy.timeout}s"
            logger.warning(f"[RETRIEVER] Strategy '{strategy.name}' TIMEOUT, falling back")
            continue
        except Exception as e:
            result.errors[strategy.name] = f"{type(e).__name__}: {e}"
            logger.warning(f"[RETRIEVER] Strategy '{strategy.name}' FAILED: {e}, falling back")
            continue

        if chunks:
            logger.info(f"[RETRIEVER] Strategy '{strategy.name}' returned {len(chunks)} chunks")
            result.chunks = list(chunks)
            result.strategy = strategy.name
            return result

        logger.info(f"[RETRIEVER] Strategy '{strategy.name}' returned no results")

    logger.info("[RETRIEVER] No strategy produced results")
    return result


def wants_full_agenda(query: str) -> bool:
    """True for requests like "la agenda completa" or "todo del día 23"."""
    lowered = (query or "").lower()
    if any(phrase in lowered for phrase in AGENDA_PHRASES):
        return True
    tokens = tokenize_query(query)
    return any(token in AGENDA_TOKENS for token in tokens)


def agenda_chunks(corpus: List[DocumentChunk]) -> List[ScoredChunk]:
    """Every event chunk of the corpus, in corpus order."""
    return [
        ScoredChunk(chunk=chunk, score=1.0)
        for chunk in corpus
        if chunk.category == AGENDA_CATEGORY
    ]


def build_strategies(
    query: str,
    cache: CorpusCache,
    openai_client: Optional[AsyncOpenAI] = None,
    collection=None,
    use_vector: bool = True,
) -> List[SearchStrategy]:
    """Build the ordered strategy list for one query."""
    strategies = []

    if wants_full_agenda(query):
        async def _agenda():
            return agenda_chunks(await cache.aget())
        strategies.append(SearchStrategy("agenda", _agenda))

    if use_vector:
        timeout = config.VECTOR_SEARCH_TIMEOUT_SECONDS

        async def _vector():
            return await vector_search(
                query,
                threshold=config.VECTOR_SIMILARITY_THRESHOLD,
                limit=config.VECTOR_RESULT_LIMIT,
                timeout=timeout,
                openai_client=openai_client,
                collection=collection,
            )
        # outer boundary slightly above the inner one so the inner timeout reports first
        strategies.append(SearchStrategy("vector", _vector, timeout=timeout + 1))

    async def _lexical():
        return search_documents(
            await cache.aget(),
            query,
            limit=config.LEXICAL_RESULT_LIMIT,
            threshold=config.LEXICAL_THRESHOLD,
        )
    strategies.append(SearchStrategy("lexical", _lexical))

    return strategies


async def retrieve(
    query: str,
    cache: CorpusCache,
    openai_client: Optional[AsyncOpenAI] = None,
    collection=None,
    use_vector: bool = True,
) -> RetrievalResult:
    """Run the retrieval pipeline for a user query."""
    logger.info(f"[RETRIEVER] Searching context for: {query[:80]!r}")
    strategies = build_strategies(
        query, cache, openai_client=openai_client, collection=collection, use_vector=use_vector
    )
    return await run_with_fallback(strategies)


async def find_relevant_context(
    query: str,
    cache: CorpusCache,
    openai_client: Optional[AsyncOpenAI] = None,
    collection=None,
    use_vector: bool = True,
    max_chars: Optional[int] = None,
) -> Tuple[str, RetrievalResult]:
    """Retrieve chunks and assemble them into the LLM context block.

    Returns:
        (context string or NO_CONTEXT_FOUND, RetrievalResult)
    """
    result = await retrieve(
        query, cache, openai_client=openai_client, collection=collection, use_vector=use_vector
    )
    budget = max_chars if max_chars is not None else config.MAX_CONTEXT_CHARS
    context = assemble_context(result.chunks, max_chars=budget)
    logger.info(
        f"[RETRIEVER] Context: {len(context):,} chars via {result.strategy or 'none'}"
    )
    return context, result
