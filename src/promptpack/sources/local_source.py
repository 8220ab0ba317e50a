"""Content source for local filesystem paths and file:// URIs."""

from pathlib import Path
from typing import BinaryIO, Optional
from urllib.parse import unquote, urlparse


class LocalFileSource:
    """Resolves plain paths and file:// URIs to readable files."""

    source_type = "file"

    def _path(self, locator: str) -> Path:
        if locator.startswith("file://"):
            return Path(unquote(urlparse(locator).path))
        return Path(locator).expanduser()

    def can_handle(self, locator: str) -> bool:
        """Check if the locator names an existing regular file."""
        return self._path(locator).is_file()

    def open(self, locator: str) -> BinaryIO:
        return self._path(locator).open("rb")

    def suggested_name(self, locator: str) -> Optional[str]:
        return self._path(locator).name or None
