"""Centralized exception hierarchy for the tlyt-bot package.

All domain-specific exceptions inherit from ``TlytBotError`` so callers
can catch the entire family with a single ``except`` clause.
"""

from __future__ import annotations


class TlytBotError(Exception):
    """Base exception for all tlyt-bot errors."""


# ---------------------------------------------------------------------------
# Catalog errors
# ---------------------------------------------------------------------------


class CatalogError(TlytBotError):
    """Raised when the trending-video catalog request fails."""


# ---------------------------------------------------------------------------
# Generation errors
# ---------------------------------------------------------------------------


class GenerationError(TlytBotError):
    """Raised when the generative provider returns an unusable analysis."""


# ---------------------------------------------------------------------------
# Forum errors
# ---------------------------------------------------------------------------


class ForumError(TlytBotError):
    """Raised when a forum API call fails or reports errors."""


class ForumAuthError(ForumError):
    """Raised when the forum access token cannot be obtained."""


# ---------------------------------------------------------------------------
# Storage errors
# ---------------------------------------------------------------------------


class RepositoryError(TlytBotError):
    """Raised when a repository read or write fails."""
