"""Inkwell: file-backed content storage with per-concern SQLite databases."""

__version__ = "0.1.0"
