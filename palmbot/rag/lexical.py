"""
Lexical relevance scoring over the in-memory corpus.

The query is reduced to a set of tokens (stop words removed, domain
acronyms always kept) and every chunk is scored by weighted word presence:
title > content > source, plus keyword and domain bonuses. Chunks matching
more distinct tokens are rewarded super-linearly through the coverage
normalization.
"""

import logging
import re
from typing import Iterable, List, Sequence

from .models import DEFAULT_WEIGHTS, DocumentChunk, ScoredChunk, ScoringWeights

logger = logging.getLogger(__name__)

_PUNCTUATION_RE = re.compile(r"[¿?¡!.,;:()\[\]{}\"'“”«»]")

MIN_TOKEN_CHARS = 2

STOP_WORDS = frozenset([
    "me", "te", "le", "la", "el", "de", "en", "un", "una", "es", "se", "por",
    "con", "para", "que", "del", "las", "los", "sus", "como", "puedes",
    "hablar", "favor", "al", "lo", "su", "y", "o", "a", "mi", "qué", "cual",
    "cuál", "sobre",
])

# Short technical terms that are never dropped and always count as acronyms
DOMAIN_ACRONYMS = frozenset(["dao", "oxg", "rspo", "hopo"])

# Tokens that get a flat bonus wherever they matched
DOMAIN_KEYWORDS = frozenset([
    "palma", "aceite", "oleico", "fedepalma", "congreso", "guaicaramo", "dao",
    "oxg", "híbrido", "rspo", "sostenible",
])


def tokenize_query(query: str) -> List[str]:
    """Lowercase, strip punctuation, split, and drop stop words.

    Duplicates are removed keeping first occurrence, so a repeated word
    cannot count twice towards coverage.
    """
    if not query:
        return []

    words = _PUNCTUATION_RE.sub(" ", query.lower()).split()
    tokens = []
    for word in words:
        if len(word) < MIN_TOKEN_CHARS and word not in DOMAIN_ACRONYMS:
            continue
        if word in STOP_WORDS and word not in DOMAIN_ACRONYMS:
            continue
        if word not in tokens:
            tokens.append(word)
    return tokens


def _uppercase_words(query: str) -> set:
    """Words written fully in upper case in the raw query, lowercased."""
    words = _PUNCTUATION_RE.sub(" ", query or "").split()
    return {w.lower() for w in words if w.isalpha() and w.isupper()}


def _is_acronym(token: str, uppercase_words: set, weights: ScoringWeights) -> bool:
    if len(token) > weights.acronym_max_length or not token.isalpha():
        return False
    return token in DOMAIN_ACRONYMS or token in uppercase_words


def score_chunk(
    chunk: DocumentChunk,
    tokens: Sequence[str],
    acronyms: Iterable[str] = (),
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> ScoredChunk:
    """Score a single chunk against pre-tokenized query tokens.

    Args:
        chunk: The chunk to score.
        tokens: Output of tokenize_query().
        acronyms: Tokens that receive the acronym multiplier.
        weights: Scoring weights.

    Returns:
        ScoredChunk with the normalized score in [0, 1].
    """
    if not tokens:
        return ScoredChunk(chunk=chunk, score=0.0, matched_tokens=0)

    acronyms = set(acronyms)
    title = chunk.title.lower()
    content = chunk.content.lower()
    source = chunk.source.lower()
    keywords = [k.lower() for k in chunk.metadata.keywords]

    raw_score = 0.0
    matched = 0

    for token in tokens:
        found = False
        token_score = 0.0

        exact = re.compile(rf"\b{re.escape(token)}\b")
        if exact.search(title):
            token_score += weights.exact_title
            found = True
        if exact.search(content):
            token_score += weights.exact_content
            found = True
        if exact.search(source):
            token_score += weights.exact_source
            found = True

        if not found:
            if token in title:
                token_score += weights.partial_title
                found = True
            if token in content:
                token_score += weights.partial_content
                found = True
            if token in source:
                token_score += weights.partial_source
                found = True

        if any(token in k for k in keywords):
            token_score += weights.keyword
            found = True

        if not found:
            continue

        if token in DOMAIN_KEYWORDS:
            token_score += weights.domain_bonus
        if token in acronyms:
            token_score *= weights.acronym_multiplier

        matched += 1
        raw_score += token_score

    if matched == 0:
        return ScoredChunk(chunk=chunk, score=0.0, matched_tokens=0)

    normalized = (raw_score * matched) / (len(tokens) * weights.normalization_factor)
    return ScoredChunk(chunk=chunk, score=min(normalized, 1.0), matched_tokens=matched)


def search_documents(
    documents: Sequence[DocumentChunk],
    query: str,
    limit: int = 3,
    threshold: float = 0.2,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> List[ScoredChunk]:
    """Rank corpus chunks against a free-text query.

    Deterministic for identical inputs. Ties keep corpus order.

    Args:
        documents: The corpus.
        query: Raw user query.
        limit: Maximum number of results.
        threshold: Minimum score (inclusive) a chunk needs to be returned.
        weights: Scoring weights.

    Returns:
        Scored chunks, best first. Empty if the query has no usable tokens.
    """
    tokens = tokenize_query(query)
    if not tokens or limit <= 0:
        logger.info(f"[SEARCH] No usable tokens in query: {query!r}")
        return []

    uppercase = _uppercase_words(query)
    acronyms = [t for t in tokens if _is_acronym(t, uppercase, weights)]

    logger.info(f"[SEARCH] Searching tokens {tokens} in {len(documents)} chunks")

    scored = []
    for chunk in documents:
        result = score_chunk(chunk, tokens, acronyms, weights)
        if result.score > 0:
            logger.debug(
                f"[SEARCH] '{chunk.title}': score={result.score:.3f}, "
                f"matched={result.matched_tokens}/{len(tokens)}"
            )
        if result.score >= threshold and result.score > 0:
            scored.append(result)

    # sorted() is stable: equal scores keep corpus order
    results = sorted(scored, key=lambda r: r.score, reverse=True)[:limit]
    logger.info(f"[SEARCH] Found {len(results)} results with threshold {threshold}")
    return results
