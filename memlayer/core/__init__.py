"""
Core memory layer: storage, ranking, budgeting and retrieval.
"""
