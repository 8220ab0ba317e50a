"""Path-based exclusion rules for archive entries."""

from typing import FrozenSet, Iterable, Optional

IGNORED_DIRS = frozenset(
    {
        "node_modules",
        ".git",
        ".svn",
        ".hg",
        "build",
        ".gradle",
        ".idea",
        "target",
        "bin",
        "out",
        "vendor",
        ".next",
        ".venv",
        "__pycache__",
        ".pytest_cache",
        ".mypy_cache",
    }
)

IGNORED_FILES = frozenset(
    {
        # Lockfiles
        "package-lock.json",
        "yarn.lock",
        "pnpm-lock.yaml",
        "Cargo.lock",
        "poetry.lock",
        "Gemfile.lock",
        "composer.lock",
        # VCS metadata
        ".gitattributes",
        ".gitmodules",
        ".DS_Store",
        # Build wrappers
        "gradlew",
        "gradlew.bat",
        "mvnw",
        "mvnw.cmd",
    }
)

ALLOWED_HIDDEN = frozenset({".gitignore", ".env"})


def parse_ignore_patterns(patterns: Optional[str]) -> FrozenSet[str]:
    """Parse a comma-separated list of directory names.

    >>> sorted(parse_ignore_patterns("node_modules, .git, /dist/"))
    ['.git', 'dist', 'node_modules']
    """
    if not patterns:
        return frozenset()
    names = (part.strip().strip("/").lower() for part in patterns.split(","))
    return frozenset(name for name in names if name)


class PathFilter:
    """Decides whether an archive entry is excluded from indexing.

    Rules, first match wins:
    1. any path segment is an ignored directory (case-insensitive, whole segment)
    2. the filename is an ignored filename (exact)
    3. the filename or any parent directory is hidden and not explicitly allowed
    """

    def __init__(self, extra_dirs: Iterable[str] = ()):
        self.ignored_dirs = IGNORED_DIRS | {name.lower() for name in extra_dirs}

    @classmethod
    def for_patterns(cls, patterns: Optional[str]) -> "PathFilter":
        return cls(parse_ignore_patterns(patterns))

    def should_ignore(self, path: str) -> bool:
        segments = [s for s in path.replace("\\", "/").split("/") if s]
        if not segments:
            return False

        if any(segment.lower() in self.ignored_dirs for segment in segments):
            return True

        filename = segments[-1]
        if filename in IGNORED_FILES:
            return True

        if any(_is_hidden(segment) for segment in segments[:-1]):
            return True
        return filename.startswith(".") and filename not in ALLOWED_HIDDEN


def _is_hidden(segment: str) -> bool:
    return segment.startswith(".") and segment != "." and segment not in ALLOWED_HIDDEN


_DEFAULT_FILTER = PathFilter()


def should_ignore(path: str) -> bool:
    """Apply the default rules to a forward-slash separated relative path."""
    return _DEFAULT_FILTER.should_ignore(path)
