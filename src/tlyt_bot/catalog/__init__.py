"""Trending-video catalog access, discovery and deduplication."""
