"""
Vector similarity search over the embedded knowledge base.

The query is embedded with OpenAI and matched against the chunk embeddings
stored in ChromaDB. Similarity is the cosine of the two vectors. The whole
path runs under a bounded timeout so a slow or failing provider never blocks
a request; callers fall back to lexical search on VectorSearchError.
"""

import asyncio
import logging
import math
from typing import Iterable, List, Optional, Sequence, Tuple

from openai import AsyncOpenAI

from .models import DocumentChunk, ScoredChunk

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0


class VectorSearchError(Exception):
    """Raised when the vector path cannot produce results (error or timeout)."""
    pass


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """dot(a, b) / (|a| * |b|), or 0.0 when either vector has no magnitude.

    Vectors of different length are compared over their shared prefix.
    """
    if not a or not b:
        return 0.0

    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return dot / (norm_a * norm_b)


def rank_by_similarity(
    query_embedding: Sequence[float],
    candidates: Iterable[Tuple[DocumentChunk, Sequence[float]]],
    threshold: float,
    limit: int,
) -> List[ScoredChunk]:
    """Score (chunk, embedding) pairs by cosine similarity.

    Returns chunks with similarity >= threshold, best first, at most `limit`.
    Equal similarities keep candidate order.
    """
    scored = []
    for chunk, embedding in candidates:
        similarity = cosine_similarity(query_embedding, embedding)
        if similarity >= threshold:
            scored.append(ScoredChunk(chunk=chunk, score=similarity))

    scored.sort(key=lambda r: r.score, reverse=True)
    return scored[:max(limit, 0)]


def similarity_search(
    query_embedding: List[float],
    threshold: float = 0.3,
    limit: int = 8,
    collection=None,
) -> List[ScoredChunk]:
    """Find stored chunks similar to the query embedding.

    Args:
        query_embedding: Embedding of the user query.
        threshold: Minimum cosine similarity.
        limit: Maximum number of results.
        collection: Optional pre-existing Chroma collection.

    Returns:
        Ranked ScoredChunk list (possibly empty).
    """
    from .chunk_store import query_chunks

    if limit <= 0:
        return []

    records = query_chunks(query_embedding, n_results=limit, collection=collection)

    candidates = []
    fallback_scores = []
    for record in records:
        if record["embedding"] is not None:
            candidates.append((record["chunk"], record["embedding"]))
        else:
            # Store did not return vectors: cosine distance -> similarity
            similarity = 1.0 - record["distance"]
            if similarity >= threshold:
                fallback_scores.append(ScoredChunk(chunk=record["chunk"], score=similarity))

    results = rank_by_similarity(query_embedding, candidates, threshold, limit)
    if fallback_scores:
        results = sorted(results + fallback_scores, key=lambda r: r.score, reverse=True)[:limit]

    logger.info(
        f"[VECTOR] Similarity search returned {len(results)} of {len(records)} "
        f"candidates (threshold {threshold}, {len(query_embedding)} dims)"
    )
    return results


async def vector_search(
    query: str,
    threshold: float = 0.3,
    limit: int = 8,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    openai_client: Optional[AsyncOpenAI] = None,
    collection=None,
) -> List[ScoredChunk]:
    """Embed the query and run the similarity search, bounded by `timeout`.

    Args:
        query: Raw user query.
        threshold: Minimum cosine similarity.
        limit: Maximum number of results.
        timeout: Seconds allowed for embedding plus search.
        openai_client: Optional pre-existing AsyncOpenAI client.
        collection: Optional pre-existing Chroma collection.

    Returns:
        Ranked ScoredChunk list (possibly empty).

    Raises:
        VectorSearchError: On timeout or any provider / store failure.
    """
    from .embedder import embed_query

    async def _search() -> List[ScoredChunk]:
        embedding = await embed_query(query, client=openai_client)
        # Chroma is synchronous: keep it off the event loop
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(
            None,
            lambda: similarity_search(embedding, threshold, limit, collection=collection),
        )

    try:
        return await asyncio.wait_for(_search(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"[VECTOR] Vector search TIMEOUT ({timeout}s) for query: {query[:80]}")
        raise VectorSearchError(f"vector search timed out after {timeout}s")
    except Exception as e:
        logger.warning(f"[VECTOR] Vector search FAILED [{type(e).__name__}]: {e}")
        raise VectorSearchError(str(e)) from e
