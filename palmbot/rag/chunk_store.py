"""
ChromaDB persistent collection management for knowledge-base chunks.

Manages the vector database that stores embeddings of the congress document
chunks. Provides methods to initialize, add, query, and rebuild the collection.
"""

import logging
import os
from typing import Any, Dict, List, Optional

from .models import ChunkMetadata, DocumentChunk

logger = logging.getLogger(__name__)

COLLECTION_NAME = "fedepalma_document_chunks"

# Chroma metadata values must be scalars
_KEYWORD_SEPARATOR = ","


def _default_persist_dir() -> str:
    from palmbot import config
    return config.CHROMA_PERSIST_DIR


def get_chroma_client(persist_dir: str = None):
    """Get a persistent ChromaDB client.

    Args:
        persist_dir: Directory for persistent storage.
                     Defaults to config.CHROMA_PERSIST_DIR.

    Returns:
        ChromaDB PersistentClient instance.
    """
    import chromadb

    persist_dir = persist_dir or _default_persist_dir()
    os.makedirs(persist_dir, exist_ok=True)
    return chromadb.PersistentClient(path=persist_dir)


def get_or_create_collection(client=None, persist_dir: str = None):
    """Get or create the document chunks collection.

    Uses cosine distance, which matches the similarity the retriever reports.

    Args:
        client: Optional pre-existing ChromaDB client.
        persist_dir: Directory for persistent storage.

    Returns:
        ChromaDB Collection instance.
    """
    if client is None:
        client = get_chroma_client(persist_dir)

    return client.get_or_create_collection(
        name=COLLECTION_NAME,
        metadata={"hnsw:space": "cosine"},
    )


def chunk_to_metadata(chunk: DocumentChunk) -> Dict[str, Any]:
    """Flatten a chunk's descriptive fields into Chroma-compatible metadata."""
    meta = chunk.metadata
    return {
        "title": chunk.title,
        "source": chunk.source,
        "category": meta.category,
        "section": meta.section,
        "document_type": meta.document_type,
        "keywords": _KEYWORD_SEPARATOR.join(meta.keywords),
        "last_updated": meta.last_updated or "",
    }


def metadata_to_chunk(chunk_id: str, content: str, metadata: Optional[Dict[str, Any]]) -> DocumentChunk:
    """Rebuild a DocumentChunk from a stored Chroma record."""
    metadata = metadata or {}
    keywords = metadata.get("keywords") or ""
    category = metadata.get("category") or "general"
    return DocumentChunk(
        id=chunk_id,
        content=content or "",
        title=metadata.get("title") or chunk_id,
        source=metadata.get("source") or "",
        metadata=ChunkMetadata(
            category=category,
            section=metadata.get("section") or "",
            document_type=metadata.get("document_type") or category,
            keywords=[k for k in keywords.split(_KEYWORD_SEPARATOR) if k],
            last_updated=metadata.get("last_updated") or None,
        ),
    )


def add_chunks(
    chunks: List[DocumentChunk],
    embeddings: List[List[float]],
    collection=None,
    persist_dir: str = None,
) -> int:
    """Add chunks with their embeddings to the collection.

    Args:
        chunks: Chunks from loader.load_documents().
        embeddings: One embedding vector per chunk.
        collection: Optional pre-existing collection.
        persist_dir: Directory for persistent storage.

    Returns:
        Number of chunks added.
    """
    if len(chunks) != len(embeddings):
        raise ValueError(
            f"Got {len(embeddings)} embeddings for {len(chunks)} chunks"
        )
    if not chunks:
        return 0

    if collection is None:
        collection = get_or_create_collection(persist_dir=persist_dir)

    collection.add(
        ids=[c.id for c in chunks],
        embeddings=embeddings,
        documents=[c.content for c in chunks],
        metadatas=[chunk_to_metadata(c) for c in chunks],
    )

    logger.info(f"[CHUNK_STORE] Added {len(chunks)} chunks to collection '{COLLECTION_NAME}'")
    return len(chunks)


def query_chunks(
    query_embedding: List[float],
    n_results: int = 8,
    collection=None,
    persist_dir: str = None,
) -> List[Dict[str, Any]]:
    """Query the collection for the nearest chunks.

    Args:
        query_embedding: Embedding vector of the user query.
        n_results: Number of nearest records to return.
        collection: Optional pre-existing collection.
        persist_dir: Directory for persistent storage.

    Returns:
        List of dicts with keys: chunk (DocumentChunk), embedding, distance.
    """
    if collection is None:
        collection = get_or_create_collection(persist_dir=persist_dir)

    results = collection.query(
        query_embeddings=[query_embedding],
        n_results=n_results,
        include=["documents", "metadatas", "distances", "embeddings"],
    )

    parsed = []
    if results and results["ids"] and results["ids"][0]:
        embeddings = results.get("embeddings")
        for i, chunk_id in enumerate(results["ids"][0]):
            parsed.append({
                "chunk": metadata_to_chunk(
                    chunk_id,
                    results["documents"][0][i],
                    results["metadatas"][0][i],
                ),
                "embedding": list(embeddings[0][i]) if embeddings is not None else None,
                "distance": results["distances"][0][i],
            })

    return parsed


def rebuild_collection(persist_dir: str = None):
    """Delete and recreate the collection (for re-indexing).

    Args:
        persist_dir: Directory for persistent storage.

    Returns:
        The fresh, empty collection.
    """
    client = get_chroma_client(persist_dir)
    try:
        client.delete_collection(COLLECTION_NAME)
        logger.info(f"[CHUNK_STORE] Deleted existing collection '{COLLECTION_NAME}'")
    except Exception as e:
        # First indexing run: nothing to delete
        logger.info(f"[CHUNK_STORE] No existing collection to delete: {e}")

    collection = get_or_create_collection(client=client)
    logger.info(f"[CHUNK_STORE] Created fresh collection '{COLLECTION_NAME}'")
    return collection


def get_collection_info(persist_dir: str = None) -> Dict[str, Any]:
    """Get information about the current collection.

    Args:
        persist_dir: Directory for persistent storage.

    Returns:
        Dict with collection name, count, and metadata.
    """
    try:
        collection = get_or_create_collection(persist_dir=persist_dir)
        return {
            "name": COLLECTION_NAME,
            "count": collection.count(),
            "metadata": collection.metadata,
        }
    except Exception as e:
        return {"name": COLLECTION_NAME, "count": 0, "error": str(e)}


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    info = get_collection_info()
    print(f"Collection: {info['name']}")
    print(f"Chunks stored: {info['count']}")
    if "error" in info:
        print(f"Error: {info['error']}")
