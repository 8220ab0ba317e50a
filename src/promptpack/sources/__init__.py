"""Content sources that resolve import locators into byte streams."""

from typing import Optional

from promptpack.protocols import ContentSource
from promptpack.sources.local_source import LocalFileSource

# Registry of available content sources
_SOURCES: list[ContentSource] = [
    LocalFileSource(),
]


def get_source(locator: str) -> Optional[ContentSource]:
    """Find a content source that can resolve the given locator.

    Args:
        locator: Opaque locator (path, URI, platform handle)

    Returns:
        A ContentSource instance that can handle the locator, or None
    """
    for source in _SOURCES:
        if source.can_handle(locator):
            return source
    return None


def register_source(source: ContentSource) -> None:
    """Register a custom content source (checked before the built-ins).

    Args:
        source: An object implementing the ContentSource protocol
    """
    _SOURCES.insert(0, source)


def unregister_source(source: ContentSource) -> None:
    if source in _SOURCES:
        _SOURCES.remove(source)


__all__ = ["get_source", "register_source", "unregister_source", "LocalFileSource"]
