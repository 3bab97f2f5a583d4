"""
Environment-driven configuration and component factories.
Factories build fresh objects on every call; nothing is cached at module level.
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def _env_optional_float(name: str) -> Optional[float]:
    value = os.getenv(name)
    return float(value) if value else None


# Database path configuration
DB_PATH = os.getenv("MEMLAYER_DB_PATH", "./data/memlayer.db")

DEBUG = _env_bool("DEBUG", "false")

# Vector system configuration
VECTOR_PROVIDER = os.getenv("VECTOR_PROVIDER", "memory")  # memory|faiss
EMBED_PROVIDER = os.getenv("EMBED_PROVIDER", "hash")  # hash|sentence-transformers|openai
EMBED_MODEL_NAME = os.getenv("EMBED_MODEL_NAME", "all-MiniLM-L6-v2")
EMBED_DIM = int(os.getenv("EMBED_DIM", "384"))
VECTOR_OPTIONAL = _env_bool("VECTOR_OPTIONAL", "true")

# Retrieval configuration
MAX_VECTOR_K = int(os.getenv("MAX_VECTOR_K", "100"))
RECENCY_HALF_LIFE_DAYS = float(os.getenv("RECENCY_HALF_LIFE_DAYS", "30"))
PRUNE_DAYS = _env_optional_float("PRUNE_DAYS")

# API configuration
API_MAX_PAGE_SIZE = 100
API_DEFAULT_PAGE_SIZE = 20

# Version string
VERSION = "0.1.0"


def debug_enabled():
    """Check if debug mode is enabled."""
    return _env_bool("DEBUG", "false")


def ensure_db_directory(db_path: Optional[str] = None):
    """Ensure the database directory exists."""
    Path(db_path or DB_PATH).parent.mkdir(parents=True, exist_ok=True)


def get_embedding_provider(provider: Optional[str] = None):
    """Build the configured embedding provider."""
    provider = provider or EMBED_PROVIDER

    if provider == "sentence-transformers":
        from ..vector.embeddings import SentenceTransformerEmbedding
        return SentenceTransformerEmbedding(EMBED_MODEL_NAME)
    elif provider == "openai":
        from ..vector.embeddings import OpenAIEmbedding
        return OpenAIEmbedding()
    elif provider == "hash":
        from ..vector.embeddings import DeterministicHashEmbedding
        return DeterministicHashEmbedding(EMBED_DIM)
    else:
        raise ValueError(f"Unknown EMBED_PROVIDER: {provider}")


def get_vector_store(dimension: Optional[int] = None, provider: Optional[str] = None):
    """Build the configured vector store implementation."""
    provider = provider or VECTOR_PROVIDER

    if provider == "memory":
        from ..vector.index import SimpleInMemoryVectorStore
        return SimpleInMemoryVectorStore()
    elif provider == "faiss":
        from ..vector.faiss_store import FaissVectorStore
        return FaissVectorStore(dimension or EMBED_DIM)
    else:
        raise ValueError(f"Unknown VECTOR_PROVIDER: {provider}")


def build_vector_adapter(optional: Optional[bool] = None):
    """Embedding adapter over the configured store, wrapped for failure isolation."""
    from ..vector.adapter import EmbeddingVectorAdapter
    from ..vector.fallback import VectorFallbackAdapter

    embedder = get_embedding_provider()
    store = get_vector_store(embedder.get_dimension())
    inner = EmbeddingVectorAdapter(store, embedder)
    return VectorFallbackAdapter(inner, VECTOR_OPTIONAL if optional is None else optional)


def build_retrieval_engine(vector, dao):
    """Retrieval engine over an explicit vector adapter and memory DAO."""
    from .retrieval import RetrievalEngine
    return RetrievalEngine(vector, dao.fetch_by_ids, default_max_k=MAX_VECTOR_K)


def validate_config():
    """Validate configuration and return any issues."""
    issues = []

    if VECTOR_PROVIDER not in ["memory", "faiss"]:
        issues.append(f"Invalid VECTOR_PROVIDER: {VECTOR_PROVIDER}")

    if EMBED_PROVIDER not in ["hash", "sentence-transformers", "openai"]:
        issues.append(f"Invalid EMBED_PROVIDER: {EMBED_PROVIDER}")

    if EMBED_PROVIDER == "openai" and not os.getenv("OPENAI_API_KEY"):
        issues.append("EMBED_PROVIDER=openai requires OPENAI_API_KEY")

    if MAX_VECTOR_K < 1:
        issues.append("MAX_VECTOR_K must be >= 1")

    if RECENCY_HALF_LIFE_DAYS <= 0:
        issues.append("RECENCY_HALF_LIFE_DAYS must be > 0")

    if PRUNE_DAYS is not None and PRUNE_DAYS <= 0:
        issues.append("PRUNE_DAYS must be > 0 when set")

    return issues
