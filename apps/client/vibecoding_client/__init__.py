"""VibeCoding remote client."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("vibecoding")
except PackageNotFoundError:
    __version__ = "0.0.0"
