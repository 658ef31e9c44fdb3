"""Shared helpers."""

from hrevu.utils.common import get_random_port

__all__ = ["get_random_port"]
