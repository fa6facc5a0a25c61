"""Anchor planning, prompt construction and generative video analysis."""
