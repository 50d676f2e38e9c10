"""Shared utilities for the backend."""
from utils.phone import normalize_phone

__all__ = [
    "normalize_phone",
]
