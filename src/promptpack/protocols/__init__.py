"""Protocol definitions for external collaborators."""

from promptpack.protocols.cache import ArtifactCache
from promptpack.protocols.source import ContentSource

__all__ = ["ArtifactCache", "ContentSource"]
