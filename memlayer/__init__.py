"""
memlayer - memory retrieval layer for AI agents.
SQLite is canonical truth; the vector index is an advisory overlay.
"""

__version__ = "0.1.0"
