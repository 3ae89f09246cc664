"""
Random-access line server for large newline-delimited files.
This package wires together the lazily built offset index, the shared
cache store and the line read path behind a small HTTP API.
"""

__all__ = [
    "config",
]
