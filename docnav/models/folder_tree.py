"""Derived navigation structures built from the document index."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from docnav.models.document import DocumentRecord, SortField


@dataclass
class FolderNode:
    """A folder in the navigation tree.

    Folders take their title and frontmatter from their index document so
    they sort with the same configuration as files.
    """

    name: str
    path: str
    title: str | None = None
    frontmatter: dict[str, Any] | None = None
    children: dict[str, FolderNode] = field(default_factory=dict)
    files: list[DocumentRecord] = field(default_factory=list)
    descendant_count: int = 0

    @property
    def display_title(self) -> str:
        """Title for display, falling back to the segment name."""
        return self.title or self.name

    def sorted_children(self, sort_config: list[SortField]) -> list[FolderNode]:
        """Child folders ordered by the sort configuration (recomputed on every call)."""
        from docnav.services.ordering import sort_folders

        return sort_folders(list(self.children.values()), sort_config)

    def sorted_files(self, sort_config: list[SortField]) -> list[DocumentRecord]:
        """Files directly in this folder ordered by the sort configuration."""
        from docnav.services.ordering import sort_files

        return sort_files(self.files, sort_config)


@dataclass(frozen=True)
class NavigationNeighbors:
    """Previous/next documents around the current page in reading order."""

    previous: DocumentRecord | None
    next: DocumentRecord | None

    @property
    def is_first(self) -> bool:
        return self.previous is None

    @property
    def is_last(self) -> bool:
        return self.next is None
