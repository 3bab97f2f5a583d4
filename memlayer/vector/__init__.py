"""
Vector memory overlay - non-canonical, advisory layer over SQLite canonical truth.
"""

# Package initialization for vector module
from .index import IVectorStore, SimpleInMemoryVectorStore
from .faiss_store import FaissVectorStore
from .types import VectorRecord, QueryResult, VectorMetadata
from .embeddings import IEmbeddingProvider, DeterministicHashEmbedding, SentenceTransformerEmbedding, OpenAIEmbedding
from .adapter import VectorAdapter, EmbeddingVectorAdapter
from .fallback import VectorFallbackAdapter

__all__ = [
    'IVectorStore',
    'SimpleInMemoryVectorStore',
    'FaissVectorStore',
    'VectorRecord',
    'QueryResult',
    'VectorMetadata',
    'IEmbeddingProvider',
    'DeterministicHashEmbedding',
    'SentenceTransformerEmbedding',
    'OpenAIEmbedding',
    'VectorAdapter',
    'EmbeddingVectorAdapter',
    'VectorFallbackAdapter',
]
