"""Relevance filtering, statistics and episode assembly."""
