#!/usr/bin/env python3
"""
Index Rebuild Utility
Rebuilds the vector index from canonical SQLite memory state after corruption or lost vectors.
"""

import argparse
import sys

from memlayer.core.config import get_embedding_provider, get_vector_store, validate_config
from memlayer.core.dao import MemoryDAO
from memlayer.vector.adapter import EmbeddingVectorAdapter
from memlayer.vector.faiss_store import FaissVectorStore
from memlayer.vector.rebuild import rebuild_index


def main(argv=None):
    """Rebuild vector index from the SQLite memory store."""
    parser = argparse.ArgumentParser(description="Rebuild the memlayer vector index")
    parser.add_argument("--db", default=None, help="SQLite path (default: MEMLAYER_DB_PATH)")
    parser.add_argument("--batch-size", type=int, default=100)
    parser.add_argument("--verify", default="test", help="Query used for the verification search")
    parser.add_argument("--output", default=None, help="Write the rebuilt FAISS index to this path")
    args = parser.parse_args(argv)

    issues = validate_config()
    if issues:
        for issue in issues:
            print(f"ERROR: {issue}")
        return 1

    dao = MemoryDAO(args.db)
    embedder = get_embedding_provider()
    store = get_vector_store(embedder.get_dimension())
    if args.output and not isinstance(store, FaissVectorStore):
        print("ERROR: --output requires VECTOR_PROVIDER=faiss")
        return 1
    adapter = EmbeddingVectorAdapter(store, embedder)

    print("Starting vector index rebuild...")
    stats = rebuild_index(dao, adapter, batch_size=args.batch_size)
    print(f"Found {stats.total} memories in canonical store")
    print(f"✓ Rebuilt index with {stats.embedded} vectors")
    if stats.failed:
        print(f"WARNING: {stats.failed} memories failed to embed: {', '.join(stats.failed_ids[:10])}")

    if stats.embedded:
        try:
            results = adapter.query(args.verify, min(3, stats.embedded))
            print(f"✓ Verification search returned {len(results)} results")
        except Exception as e:
            print(f"WARNING: Verification search failed: {e}")

    if args.output:
        store.save(args.output)
        print(f"✓ Saved index to {args.output}")

    print("Index rebuild complete!")
    return 0 if not stats.failed else 2


if __name__ == "__main__":
    sys.exit(main())
