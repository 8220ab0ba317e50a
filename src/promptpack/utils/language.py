"""Extension sniffing for the language/kind tag of imported files."""

from pathlib import PurePosixPath
from typing import Optional

ARCHIVE_KIND = "zip"
ARCHIVE_EXTENSIONS = {".zip", ".jar"}

EXT_TO_LANG = {
    ".kt": "kotlin",
    ".kts": "kotlin",
    ".java": "java",
    ".xml": "xml",
    ".json": "json",
    ".md": "markdown",
    ".py": "python",
    ".js": "javascript",
    ".ts": "typescript",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".rb": "ruby",
    ".go": "go",
    ".rs": "rust",
    ".swift": "swift",
    ".php": "php",
    ".gradle": "gradle",
    ".properties": "properties",
    ".yml": "yaml",
    ".yaml": "yaml",
    ".toml": "toml",
    ".html": "html",
    ".css": "css",
    ".txt": "text",
}


def file_extension(name: str) -> Optional[str]:
    """Return the lower-cased extension without the dot, or None."""
    suffix = PurePosixPath(name).suffix.lower()
    return suffix[1:] if suffix else None


def is_archive_name(name: str) -> bool:
    return PurePosixPath(name).suffix.lower() in ARCHIVE_EXTENSIONS


def guess_language(name: str) -> Optional[str]:
    """Map a filename to a language tag by extension."""
    return EXT_TO_LANG.get(PurePosixPath(name).suffix.lower())


def detect_kind(name: str) -> Optional[str]:
    """Kind tag stored on import: "zip" for archives, else the language."""
    if is_archive_name(name):
        return ARCHIVE_KIND
    return guess_language(name)
