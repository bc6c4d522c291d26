"""Assembly of retrieved chunks into the context block sent to the LLM."""

import logging
from typing import Iterable, Union

from .models import DocumentChunk, ScoredChunk

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONTEXT_CHARS = 8000

# Below this remaining budget a truncated chunk is not worth including
MIN_TRUNCATED_CHARS = 100

ELLIPSIS = "..."

# Returned when nothing was retrieved. Not literal content: see has_context()
NO_CONTEXT_FOUND = "No se encontró información relevante en la base de datos."


def format_chunk(chunk: Union[DocumentChunk, ScoredChunk]) -> str:
    return f"Documento: {chunk.title}\nContenido: {chunk.content}\n\n"


def assemble_context(
    chunks: Iterable[Union[DocumentChunk, ScoredChunk]],
    max_chars: int = DEFAULT_MAX_CONTEXT_CHARS,
) -> str:
    """Concatenate chunks in rank order within a character budget.

    A chunk that does not fit is included truncated (ending in "...") when
    more than MIN_TRUNCATED_CHARS of budget remain; assembly stops there.

    Args:
        chunks: Ranked chunks, best first.
        max_chars: Total character budget of the returned string.

    Returns:
        The context string, or NO_CONTEXT_FOUND when `chunks` is empty.
    """
    parts = []
    current_length = 0
    included = 0

    for chunk in chunks:
        block = format_chunk(chunk)
        if current_length + len(block) <= max_chars:
            parts.append(block)
            current_length += len(block)
            included += 1
            continue

        remaining = max_chars - current_length
        if remaining > MIN_TRUNCATED_CHARS:
            parts.append(block[:remaining - len(ELLIPSIS)] + ELLIPSIS)
            current_length = max_chars
            included += 1
            logger.info(f"[CONTEXT] Truncated chunk '{chunk.title}' to fit {max_chars} chars")
        break

    if not parts:
        return NO_CONTEXT_FOUND

    logger.info(f"[CONTEXT] Assembled {included} chunks ({current_length:,} chars)")
    return "".join(parts)


def has_context(context: str) -> bool:
    """True if `context` holds retrieved content rather than the empty sentinel."""
    return bool(context and context.strip()) and context != NO_CONTEXT_FOUND
