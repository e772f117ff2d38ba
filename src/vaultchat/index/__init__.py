"""Corpus indexing, scoring and ranking."""
