"""Similarity scoring, search, matching, and batch resolution."""
