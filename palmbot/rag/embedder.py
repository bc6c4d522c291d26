"""
Embedder module for generating and storing OpenAI embeddings.

Embeds the knowledge-base chunks and stores them in ChromaDB via the
chunk_store module. Also embeds individual queries at retrieval time.
"""

import asyncio
import logging
import os
from typing import List, Optional

from openai import AsyncOpenAI

from .models import DocumentChunk

logger = logging.getLogger(__name__)

# Embedding input is title + content, capped to stay well under the token limit
MAX_EMBEDDING_INPUT_CHARS = 8000

# OpenAI accepts up to 2048 inputs per request
EMBEDDING_BATCH_SIZE = 20


def _embedding_settings():
    from palmbot import config
    return config.EMBEDDING_MODEL, config.EMBEDDING_DIMENSIONS


def get_openai_client() -> AsyncOpenAI:
    """Get an AsyncOpenAI client using the configured API key.

    Returns:
        AsyncOpenAI client instance.

    Raises:
        ValueError: If OPENAI_API_KEY is not set.
    """
    api_key = os.environ.get("OPENAI_API_KEY")
    if not api_key:
        from palmbot import config
        api_key = config.OPENAI_API_KEY

    if not api_key:
        raise ValueError("OPENAI_API_KEY not found in environment or palmbot.config")

    return AsyncOpenAI(api_key=api_key)


def embedding_text(chunk: DocumentChunk) -> str:
    """Text used to embed a chunk: its title followed by its content."""
    return f"{chunk.title} {chunk.content}"[:MAX_EMBEDDING_INPUT_CHARS]


async def embed_texts(
    texts: List[str],
    client: Optional[AsyncOpenAI] = None,
) -> List[List[float]]:
    """Generate embeddings for a list of texts using OpenAI API.

    Args:
        texts: List of text strings to embed.
        client: Optional pre-existing AsyncOpenAI client.

    Returns:
        List of embedding vectors (each a list of floats), in input order.
    """
    if not texts:
        return []
    if client is None:
        client = get_openai_client()

    model, dimensions = _embedding_settings()
    embeddings: List[List[float]] = []
    total_tokens = 0

    for start in range(0, len(texts), EMBEDDING_BATCH_SIZE):
        batch = texts[start:start + EMBEDDING_BATCH_SIZE]
        response = await client.embeddings.create(
            model=model,
            input=batch,
            dimensions=dimensions,
        )
        embeddings.extend(item.embedding for item in response.data)
        if getattr(response, "usage", None) is not None:
            total_tokens += response.usage.total_tokens

    logger.info(
        f"[EMBEDDER] Generated {len(embeddings)} embeddings "
        f"({model}, {dimensions}d), usage: {total_tokens} tokens"
    )
    return embeddings


async def embed_query(
    query: str,
    client: Optional[AsyncOpenAI] = None,
) -> List[float]:
    """Generate an embedding for a single query string.

    Args:
        query: The query text to embed.
        client: Optional pre-existing AsyncOpenAI client.

    Returns:
        Embedding vector (list of floats).
    """
    if client is None:
        client = get_openai_client()

    model, dimensions = _embedding_settings()
    response = await client.embeddings.create(
        model=model,
        input=query.strip(),
        dimensions=dimensions,
    )

    return response.data[0].embedding


async def index_corpus(
    corpus: List[DocumentChunk],
    rebuild: bool = True,
    client: Optional[AsyncOpenAI] = None,
    persist_dir: str = None,
) -> int:
    """Embed every chunk of the corpus and store it in ChromaDB.

    Run whenever the JSON knowledge base changes.

    Args:
        corpus: Chunks to index (usually the cached corpus).
        rebuild: If True, delete the existing collection before indexing.
        client: Optional pre-existing AsyncOpenAI client.
        persist_dir: Directory for persistent storage.

    Returns:
        Number of chunks indexed.
    """
    from .chunk_store import add_chunks, get_or_create_collection, rebuild_collection

    logger.info(f"[EMBEDDER] Starting indexing of {len(corpus)} chunks...")

    if not corpus:
        logger.error("[EMBEDDER] No chunks to index")
        return 0

    embeddings = await embed_texts([embedding_text(c) for c in corpus], client=client)

    if rebuild:
        collection = rebuild_collection(persist_dir)
    else:
        collection = get_or_create_collection(persist_dir=persist_dir)

    count = add_chunks(corpus, embeddings, collection=collection)

    logger.info(f"[EMBEDDER] Indexing complete: {count} chunks stored")
    return count


if __name__ == "__main__":
    # Standalone script: run full indexing
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    from palmbot import config
    from .loader import load_documents

    print("=== Knowledge Base Indexer ===")
    print(f"Model: {config.EMBEDDING_MODEL} ({config.EMBEDDING_DIMENSIONS} dimensions)")
    print()

    count = asyncio.run(index_corpus(load_documents(config.DATA_DIR), rebuild=True))

    print(f"\nDone! Indexed {count} chunks.")

    from .chunk_store import get_collection_info
    info = get_collection_info()
    print(f"Collection '{info['name']}' now has {info['count']} chunks stored.")
