"""Exception types and the error record published by the repository."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


class PromptPackError(Exception):
    """Base class for PromptPack errors."""


class ArchiveError(PromptPackError):
    """Raised when an archive stream is malformed or truncated."""


class ArchiveLimitError(ArchiveError):
    """Raised when an archive expands past the decompression budget."""


class IndexCancelled(PromptPackError):
    """Raised inside a scan when its cancellation token is set."""


class ImportFailed(PromptPackError):
    """Raised when an external source cannot be copied into storage."""


@dataclass
class RepoError:
    """A failure caught by the repository and reported to listeners."""

    source: str
    message: str
    exception: Optional[BaseException] = None
    timestamp: str = field(
        default_factory=lambda: datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    )

    def describe(self) -> str:
        if self.exception is None:
            return f"{self.source}: {self.message}"
        return f"{self.source}: {self.message} ({self.exception})"
