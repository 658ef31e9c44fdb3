"""hrevu package initialization."""

from __future__ import annotations

__version__ = "0.1.2"

__all__: list[str] = ["__version__"]
