"""
Loader module for turning the congress JSON documents into search chunks.

Every *.json file in the data directory is walked depth-first; significant
string leaves become (path, text) fragments, and fragments are grouped by
their top-level section (one per array item for lists) so that each file
yields at most one chunk per section. Chunks carry a category derived from
the file name and the domain keywords found in their content.

A malformed file is logged and skipped; a missing or empty directory
produces an empty corpus.
"""

import json
import logging
import os
from typing import Any, Dict, List, Optional, Tuple

from .models import ChunkMetadata, DocumentChunk

logger = logging.getLogger(__name__)

# Strings at or below these lengths are labels/ids, not retrievable content
MIN_LEAF_CHARS = 20
MIN_LIST_ITEM_CHARS = 10

# A section is only emitted if one of its fragments exceeds this length
MIN_SECTION_TRIGGER_CHARS = 50

# Chunks at or below this length carry no retrievable signal
MIN_CHUNK_CHARS = 100
MAX_CHUNK_CHARS = 1500

MAX_KEYWORDS = 10

SOURCE_PREFIX = "FEDEPALMA"
LAST_UPDATED = "2024-01-01"

# Filename substring rules, evaluated in order (first match wins)
CATEGORY_RULES = [
    ("eventos", ["congreso", "agenda"]),
    ("fundacion", ["fundacion", "fundación"]),
    ("empresas", ["dao", "sirius", "guaicaramo"]),
]
DEFAULT_CATEGORY = "general"

# Palm-oil sector vocabulary used to tag chunks
DOMAIN_VOCABULARY = [
    "palma", "aceite", "oleico", "OxG", "híbrido", "sostenible", "RSPO",
    "fedepalma", "cenipalma", "palmicultura", "extracción", "beneficio",
    "congreso", "conferencia", "guaicaramo", "dao", "sirius",
]

Fragment = Tuple[str, str]


def flatten_json(obj: Any, path: str = "", fragments: Optional[List[Fragment]] = None) -> List[Fragment]:
    """Recursively extract (path, text) fragments from a parsed JSON value.

    Args:
        obj: Any parsed JSON value (dict, list, str, number, bool, None).
        path: Dotted path of `obj` within the document ("a.b[2].c").
        fragments: Accumulator, created on the first call.

    Returns:
        List of (path, stripped text) pairs in depth-first order.
    """
    if fragments is None:
        fragments = []

    if isinstance(obj, str):
        text = obj.strip()
        if len(text) > MIN_LEAF_CHARS:
            fragments.append((path, text))
    elif isinstance(obj, list):
        for index, item in enumerate(obj):
            item_path = f"{path}[{index}]"
            if isinstance(item, str):
                text = item.strip()
                if len(text) > MIN_LIST_ITEM_CHARS:
                    fragments.append((item_path, text))
            else:
                flatten_json(item, item_path, fragments)
    elif isinstance(obj, dict):
        for key, value in obj.items():
            key_path = f"{path}.{key}" if path else str(key)
            flatten_json(value, key_path, fragments)
    # numbers, booleans and nulls carry no text

    return fragments


def section_of(path: str) -> str:
    """Return the top-level segment of a fragment path ("root" if none).

    Array indices stay part of the segment, so every item of a list
    ("plenarias[3]", or "[3]" for a top-level list) is its own section.
    """
    return path.split(".", 1)[0] or "root"


def categorize(file_name: str) -> str:
    """Assign a category from file-name substrings."""
    lowered = file_name.lower()
    for category, needles in CATEGORY_RULES:
        if any(needle in lowered for needle in needles):
            return category
    return DEFAULT_CATEGORY


def extract_keywords(content: str) -> List[str]:
    """Return the domain vocabulary terms that appear in `content`."""
    content_lower = content.lower()
    found = [kw for kw in DOMAIN_VOCABULARY if kw.lower() in content_lower]
    return found[:MAX_KEYWORDS]


def document_name(file_name: str, data: Any) -> str:
    """Human-readable document name.

    Prefers a top-level "name", then the "name" of the first top-level
    object that has one (e.g. congress_info.name), then the file stem.
    """
    if isinstance(data, dict):
        name = data.get("name")
        if isinstance(name, str) and name.strip():
            return name.strip()
        for value in data.values():
            if isinstance(value, dict):
                nested = value.get("name")
                if isinstance(nested, str) and nested.strip():
                    return nested.strip()

    stem = os.path.splitext(file_name)[0]
    return stem.replace("-", " ").replace("_", " ")


def build_chunks(file_name: str, data: Any, category: str) -> List[DocumentChunk]:
    """Group a document's fragments by section and build one chunk per section.

    Args:
        file_name: Base name of the JSON file (used in id, title fallback, source).
        data: Parsed JSON content.
        category: Category assigned to every chunk of this file.

    Returns:
        Chunks in order of first section appearance.
    """
    fragments = flatten_json(data)
    main_title = document_name(file_name, data)

    # section -> {"trigger": first fragment index long enough to emit, "texts": [...]}
    sections: Dict[str, Dict[str, Any]] = {}
    for index, (path, text) in enumerate(fragments):
        section = section_of(path)
        entry = sections.setdefault(section, {"trigger": None, "texts": []})
        if len(text) > MIN_LEAF_CHARS:
            entry["texts"].append(text)
        if entry["trigger"] is None and len(text) > MIN_SECTION_TRIGGER_CHARS:
            entry["trigger"] = index

    chunks = []
    for section, entry in sections.items():
        if entry["trigger"] is None:
            continue

        content = ". ".join(entry["texts"])[:MAX_CHUNK_CHARS]
        if len(content) <= MIN_CHUNK_CHARS:
            continue

        chunks.append(DocumentChunk(
            id=f"{file_name}_{section}_{entry['trigger']}",
            content=content,
            title=f"{main_title} - {section.replace('_', ' ')}",
            source=f"{SOURCE_PREFIX} - {file_name}",
            metadata=ChunkMetadata(
                category=category,
                section=section,
                document_type=category,
                keywords=extract_keywords(content),
                last_updated=LAST_UPDATED,
            ),
        ))

    return chunks


def load_documents(data_dir: str) -> List[DocumentChunk]:
    """Load every JSON file of `data_dir` into a flat list of chunks.

    Args:
        data_dir: Directory containing the *.json knowledge base files.

    Returns:
        The corpus. Empty if the directory is missing, empty, or unreadable.
    """
    if not data_dir or not os.path.isdir(data_dir):
        logger.warning(f"[LOADER] Data directory not found: {data_dir}")
        return []

    try:
        files = sorted(f for f in os.listdir(data_dir) if f.endswith(".json"))
    except OSError as e:
        logger.error(f"[LOADER] Could not list data directory {data_dir}: {e}")
        return []

    corpus: List[DocumentChunk] = []
    for file_name in files:
        file_path = os.path.join(data_dir, file_name)
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error(f"[LOADER] Error processing {file_name}: {e}")
            continue

        chunks = build_chunks(file_name, data, categorize(file_name))
        corpus.extend(chunks)
        logger.info(f"[LOADER] Loaded {file_name}: {len(chunks)} chunks")

    logger.info(f"[LOADER] Total corpus: {len(corpus)} chunks from {len(files)} files")
    return corpus


if __name__ == "__main__":
    # Standalone check: show corpus summary
    logging.basicConfig(level=logging.INFO)
    from collections import Counter
    from palmbot import config

    corpus = load_documents(config.DATA_DIR)
    print(f"\nTotal chunks: {len(corpus)}")
    for category, count in sorted(Counter(c.category for c in corpus).items()):
        print(f"  {category}: {count} chunks")
    for c in corpus:
        print(f"  {c.id} ({len(c.content):,} chars) {c.metadata.keywords}")
