"""Shared helpers for codemap."""

from .text import letter_suffix, slugify_kebab, truncate_preview

__all__ = ["letter_suffix", "slugify_kebab", "truncate_preview"]
