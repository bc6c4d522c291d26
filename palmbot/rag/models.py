"""Retrieval data model: document chunks, scored results and scoring weights.

`DocumentChunk` is the unit of retrieval produced by the loader. `ScoredChunk`
is the transient, query-time view of a chunk carrying its relevance score.
`ScoringWeights` groups every tunable number used by the lexical scorer.
"""
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional


@dataclass
class ChunkMetadata:
    """Descriptive metadata attached to a chunk at load time.

    Attributes:
        category: One of 'eventos', 'fundacion', 'empresas', 'general'.
        section: Top-level JSON key the chunk was built from.
        document_type: Same value as category for JSON documents.
        keywords: Domain vocabulary found in the chunk content (max 10).
        last_updated: Optional ISO date of the source document.
    """
    category: str
    section: str
    document_type: str
    keywords: List[str] = field(default_factory=list)
    last_updated: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "section": self.section,
            "documentType": self.document_type,
            "keywords": list(self.keywords),
            "lastUpdated": self.last_updated,
        }


@dataclass
class DocumentChunk:
    """A bounded-length unit of retrievable text from one section of one file."""
    id: str
    content: str
    title: str
    source: str
    metadata: ChunkMetadata
    similarity: Optional[float] = None

    @property
    def category(self) -> str:
        return self.metadata.category

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "content": self.content,
            "title": self.title,
            "source": self.source,
            "metadata": self.metadata.to_dict(),
        }
        if self.similarity is not None:
            data["similarity"] = self.similarity
        return data


@dataclass
class ScoredChunk:
    """A chunk annotated with its query-time score. Never persisted."""
    chunk: DocumentChunk
    score: float
    matched_tokens: int = 0

    @property
    def title(self) -> str:
        return self.chunk.title

    @property
    def content(self) -> str:
        return self.chunk.content

    def to_document(self) -> DocumentChunk:
        """Return a copy of the chunk with `similarity` set to the score."""
        return replace(self.chunk, similarity=self.score)

    def to_dict(self) -> Dict[str, Any]:
        data = self.to_document().to_dict()
        data["matchedTokens"] = self.matched_tokens
        return data


@dataclass(frozen=True)
class ScoringWeights:
    """Weights of the lexical scorer.

    Exact (word-boundary) hits are summed across title, content and source.
    Partial (substring) weights only apply to a token with no exact hit.
    """
    exact_title: float = 10.0
    exact_content: float = 5.0
    exact_source: float = 3.0
    partial_title: float = 3.0
    partial_content: float = 2.0
    partial_source: float = 1.0
    keyword: float = 4.0
    domain_bonus: float = 2.0
    acronym_multiplier: float = 1.5
    acronym_max_length: int = 4
    normalization_factor: float = 10.0


DEFAULT_WEIGHTS = ScoringWeights()
