"""Protocol for external content sources used on import."""

from typing import BinaryIO, Optional, Protocol, runtime_checkable


@runtime_checkable
class ContentSource(Protocol):
    """Protocol for resolving an opaque locator into a byte stream.

    Implementations handle different locator schemes (local paths,
    platform content handles). Uses structural subtyping - no
    inheritance required.
    """

    @property
    def source_type(self) -> str:
        """Return identifier for this source type (e.g., 'file')."""
        ...

    def can_handle(self, locator: str) -> bool:
        """Check if this source can resolve the given locator."""
        ...

    def open(self, locator: str) -> BinaryIO:
        """Open a readable binary stream; the caller closes it."""
        ...

    def suggested_name(self, locator: str) -> Optional[str]:
        """Return a display name hint, or None if the locator has none."""
        ...
