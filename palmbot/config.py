import os
from dotenv import load_dotenv
from pathlib import Path

# Load environment variables from .env file with explicit path
load_dotenv(dotenv_path=Path(__file__).parent.parent / '.env')

# OpenAI Configuration
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
CHAT_MODEL = os.getenv("CHAT_MODEL", "gpt-4")
CHAT_TEMPERATURE = float(os.getenv("CHAT_TEMPERATURE", "0.3"))
CHAT_MAX_TOKENS = int(os.getenv("CHAT_MAX_TOKENS", "1200"))
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")
EMBEDDING_DIMENSIONS = int(os.getenv("EMBEDDING_DIMENSIONS", "1536"))

# Knowledge base
DATA_DIR = os.getenv("DATA_DIR", str(Path(__file__).parent.parent / "data"))
CHROMA_PERSIST_DIR = os.getenv(
    "CHROMA_PERSIST_DIR", str(Path(__file__).parent / "rag" / "chroma_db")
)

# Corpus cache
CORPUS_CACHE_TTL_SECONDS = int(os.getenv("CORPUS_CACHE_TTL_SECONDS", "300"))  # 5 minutes

# Retrieval
VECTOR_SEARCH_TIMEOUT_SECONDS = float(os.getenv("VECTOR_SEARCH_TIMEOUT_SECONDS", "5"))
VECTOR_SIMILARITY_THRESHOLD = float(os.getenv("VECTOR_SIMILARITY_THRESHOLD", "0.3"))
VECTOR_RESULT_LIMIT = int(os.getenv("VECTOR_RESULT_LIMIT", "8"))
LEXICAL_THRESHOLD = float(os.getenv("LEXICAL_THRESHOLD", "0.2"))
LEXICAL_RESULT_LIMIT = int(os.getenv("LEXICAL_RESULT_LIMIT", "8"))
MAX_CONTEXT_CHARS = int(os.getenv("MAX_CONTEXT_CHARS", "8000"))

# Chat endpoint
MAX_MESSAGE_CHARS = int(os.getenv("MAX_MESSAGE_CHARS", "2000"))
