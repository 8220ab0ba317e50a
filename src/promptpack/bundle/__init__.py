"""Context bundle assembly."""

from promptpack.bundle.assembler import Bundle, ContextBundleAssembler, format_size
from promptpack.bundle.templates import INSTRUCTIONS, NO_SUMMARY

__all__ = ["Bundle", "ContextBundleAssembler", "format_size", "INSTRUCTIONS", "NO_SUMMARY"]
