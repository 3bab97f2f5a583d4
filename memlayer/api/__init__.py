"""
HTTP surface for search, recall and memory CRUD.
"""
