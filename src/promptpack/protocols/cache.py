"""Protocol for the persistent store of files and cached artifacts."""

from typing import Callable, Optional, Protocol, runtime_checkable

from promptpack.models import StoredFile


@runtime_checkable
class ArtifactCache(Protocol):
    """Key-value-with-query store the core persists through.

    Writes are last-writer-wins; nothing here is transactional across calls.
    """

    def get_by_id(self, file_id: int) -> Optional[StoredFile]:
        ...

    def upsert(self, file: StoredFile) -> int:
        """Insert or update by file path and return the row id."""
        ...

    def update_tree(self, file_id: int, tree: str) -> None:
        ...

    def update_metadata_index(self, file_id: int, tree: str, summary: str) -> None:
        ...

    def update_last_accessed(self, file_id: int, timestamp: Optional[int] = None) -> None:
        ...

    def delete(self, file_id: int) -> None:
        ...

    def list_files(self) -> list[StoredFile]:
        """Non-archived files, favorites first, then most recently accessed."""
        ...

    def search(self, query: str) -> list[StoredFile]:
        ...

    def subscribe(self, listener: Callable[[list[StoredFile]], None]) -> Callable[[], None]:
        """Call `listener` with list_files() after every write; returns an unsubscribe."""
        ...
