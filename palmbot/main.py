# Entry point for the FastAPI app
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import logging
import time

from . import config, chat
from .rag import embedder
from .rag.cache import CorpusCache
from .rag.lexical import search_documents
from .rag.loader import load_documents
from .rag.retriever import find_relevant_context

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI()

# Search request bounds
DEFAULT_SEARCH_LIMIT = 3
MAX_SEARCH_LIMIT = 10
DEFAULT_SEARCH_THRESHOLD = 0.2

default_message = {"status": "ok", "service": "palmbot", "detail": "Asistente Congreso FEDEPALMA 2025"}

# One corpus cache per process, shared by every request handler
corpus_cache = CorpusCache(
    lambda: load_documents(config.DATA_DIR),
    ttl_seconds=config.CORPUS_CACHE_TTL_SECONDS,
)


def _is_api_key_configured() -> bool:
    api_key = config.OPENAI_API_KEY
    return bool(api_key) and "dummy" not in api_key


async def _read_json(request: Request):
    try:
        body = await request.json()
    except Exception:
        logger.warning("[API] Could not parse request body as JSON")
        return None
    return body if isinstance(body, dict) else None


def _elapsed_ms(start_time: float) -> int:
    return int((time.monotonic() - start_time) * 1000)


@app.get("/")
def root():
    return default_message


@app.post("/api/search/documents")
async def search_documents_endpoint(request: Request):
    """Lexical search over the cached knowledge base.

    Body: {"query": str, "limit"?: int (default 3, max 10), "threshold"?: float (default 0.2)}
    """
    start_time = time.monotonic()
    body = await _read_json(request)
    query = (body or {}).get("query")

    if not isinstance(query, str) or not query.strip():
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "Query de búsqueda requerida"},
        )

    try:
        limit = min(int(body.get("limit") or DEFAULT_SEARCH_LIMIT), MAX_SEARCH_LIMIT)
        threshold = body.get("threshold")
        threshold = DEFAULT_SEARCH_THRESHOLD if threshold is None else float(threshold)
    except (TypeError, ValueError):
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "Parámetros limit/threshold inválidos"},
        )

    try:
        documents = await corpus_cache.aget()
        if not documents:
            return JSONResponse(
                status_code=500,
                content={
                    "success": False,
                    "error": "No se pudieron cargar los documentos de FEDEPALMA",
                    "processingTimeMs": _elapsed_ms(start_time),
                },
            )

        results = search_documents(documents, query, limit=limit, threshold=threshold)
        processing_time = _elapsed_ms(start_time)
        logger.info(f"[API] Search found {len(results)} results in {processing_time}ms")

        return {
            "success": True,
            "results": [r.to_document().to_dict() for r in results],
            "totalResults": len(results),
            "processingTimeMs": processing_time,
            "query": query,
            "metadata": {
                "searchMode": "lexical",
                "searchParams": {"limit": limit, "threshold": threshold},
            },
        }
    except Exception as e:
        logger.exception("[API] Error in document search")
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": str(e), "processingTimeMs": _elapsed_ms(start_time)},
        )


@app.get("/api/search/documents")
def search_status():
    """Report configuration and the currently loaded corpus."""
    documents = corpus_cache.get()
    categories = sorted({doc.category for doc in documents})
    age = corpus_cache.age()
    return {
        "status": "ok",
        "service": "document-search",
        "configured": _is_api_key_configured(),
        "documentsCount": len(documents),
        "categories": categories,
        "model": config.EMBEDDING_MODEL,
        "cacheAgeSeconds": round(age, 1) if age is not None else None,
    }


@app.post("/api/chat")
async def chat_endpoint(request: Request):
    """Answer a question grounded on the knowledge base.

    Body: {"message": str, "conversationHistory"?: [{"role", "content"}]}
    """
    start_time = time.monotonic()
    body = await _read_json(request)
    message = (body or {}).get("message")

    if not isinstance(message, str) or not message.strip():
        return JSONResponse(status_code=400, content={"success": False, "error": "Mensaje requerido"})

    if len(message) > config.MAX_MESSAGE_CHARS:
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "error": f"Mensaje demasiado largo (máximo {config.MAX_MESSAGE_CHARS} caracteres)",
            },
        )

    history = body.get("conversationHistory")
    if not isinstance(history, list):
        history = []

    try:
        logger.info(f"[API] Chat query received: {message[:80]!r}")
        context, retrieval = await find_relevant_context(
            message, corpus_cache, use_vector=_is_api_key_configured()
        )
        response = await chat.generate_response(message, context, history)

        return {
            "success": True,
            "response": response,
            "sources": [c.title for c in retrieval.chunks],
            "strategy": retrieval.strategy,
            "processingTimeMs": _elapsed_ms(start_time),
        }
    except Exception as e:
        logger.exception("[API] Error in chat handler")
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Error interno del servidor", "detail": str(e)},
        )


@app.post("/api/setup-embeddings")
async def setup_embeddings():
    """Embed the whole corpus and rebuild the vector collection."""
    try:
        documents = await corpus_cache.aget()
        count = await embedder.index_corpus(documents, rebuild=True)
        return {
            "success": True,
            "message": "Setup completado",
            "processedDocuments": count,
        }
    except Exception as e:
        logger.exception("[API] Error setting up embeddings")
        return JSONResponse(status_code=500, content={"success": False, "error": str(e)})


@app.post("/api/cache/invalidate")
def invalidate_cache():
    """Force the next request to reload the JSON knowledge base."""
    corpus_cache.invalidate()
    return {"status": "ok", "detail": "Corpus cache invalidated"}
