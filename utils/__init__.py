"""
Shared helpers for text normalization, stock and pagination.
"""
