"""Text/binary classification for archive entries and stored files."""

from pathlib import PurePosixPath

# Extensions whose content is worth inlining into a tree
TEXT_EXTENSIONS = {
    # Source
    "kt", "kts", "java", "py", "js", "ts", "c", "cpp", "h", "rb", "go",
    "rs", "swift", "php",
    # Config / build
    "xml", "json", "gradle", "properties", "yml", "yaml", "toml",
    # Docs / web
    "md", "txt", "html", "css",
}

# Common binary file extensions
BINARY_EXTENSIONS = {
    # Images
    ".png", ".jpg", ".jpeg", ".gif", ".bmp", ".ico", ".webp", ".tiff",
    # Documents
    ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx", ".odt", ".ods",
    # Archives
    ".zip", ".jar", ".tar", ".gz", ".rar", ".7z", ".bz2", ".xz",
    # Executables
    ".exe", ".dll", ".so", ".dylib", ".bin",
    # Media
    ".mp3", ".mp4", ".avi", ".mov", ".wav", ".flac", ".mkv", ".webm",
    # Compiled
    ".pyc", ".pyo", ".class", ".o", ".obj", ".wasm", ".dex",
    # Fonts
    ".ttf", ".otf", ".woff", ".woff2", ".eot",
    # Other
    ".db", ".sqlite", ".sqlite3",
}

CONTROL_SAMPLE_SIZE = 128
CONTROL_RATIO = 0.10
_ALLOWED_CONTROLS = {9, 10, 13}  # tab, LF, CR


def looks_like_text_or_code(filename: str) -> bool:
    """Check the lower-cased extension against the text allow-list."""
    name = filename.rsplit("/", 1)[-1]
    if "." not in name:
        return False
    return name.rsplit(".", 1)[-1].lower() in TEXT_EXTENSIONS


def is_binary_extension(path: str) -> bool:
    """Check if file extension indicates binary content."""
    return PurePosixPath(path).suffix.lower() in BINARY_EXTENSIONS


def is_binary_content(sample: bytes) -> bool:
    """Detect if a byte sample is binary.

    A NUL byte anywhere in the sample is decisive. Otherwise the first
    CONTROL_SAMPLE_SIZE bytes are scanned for control bytes other than
    tab, LF and CR; more than CONTROL_RATIO of them marks the sample binary.

    Args:
        sample: Leading bytes of a file, entry or chunk

    Returns:
        True if content appears to be binary. Empty samples are text.
    """
    if not sample:
        return False

    if b"\x00" in sample:
        return True

    head = sample[:CONTROL_SAMPLE_SIZE]
    controls = sum(
        1 for byte in head if (byte < 32 and byte not in _ALLOWED_CONTROLS) or byte == 127
    )
    return (controls / len(head)) > CONTROL_RATIO


def detect_binary(path: str, content: bytes) -> bool:
    """Detect if a file is binary using both extension and content analysis."""
    # Fast path: check extension first
    if is_binary_extension(path):
        return True

    return is_binary_content(content)
