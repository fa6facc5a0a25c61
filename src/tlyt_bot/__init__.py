"""tlyt-bot: trending video digests published to a community forum."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("tlyt-bot")
except PackageNotFoundError:
    __version__ = "0.1.0"

__all__ = ["__version__"]
