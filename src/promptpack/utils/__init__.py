"""Utility functions for PromptPack."""

from promptpack.utils.binary import (
    detect_binary,
    is_binary_content,
    is_binary_extension,
    looks_like_text_or_code,
)
from promptpack.utils.language import detect_kind, file_extension, guess_language

__all__ = [
    "detect_binary",
    "is_binary_content",
    "is_binary_extension",
    "looks_like_text_or_code",
    "detect_kind",
    "file_extension",
    "guess_language",
]
