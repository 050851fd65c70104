"""
Global reading order and previous/next navigation.

The folder tree is flattened depth-first: a folder's own documents come
before its subfolders, the way a book's introduction precedes its chapters.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from docnav.models.document import DEFAULT_INDEX_FILE, DEFAULT_SORT_CONFIG, DocumentRecord, SortField
from docnav.models.folder_tree import FolderNode, NavigationNeighbors
from docnav.services.folder_tree import build_folder_tree, folder_chain
from docnav.services.ordering import sort_files, sort_folders

logger = logging.getLogger(__name__)


def flatten_to_linear_sequence(
    root: FolderNode,
    sort_config: Sequence[SortField],
) -> list[DocumentRecord]:
    """
    Flatten a folder tree into the global reading order.

    Each folder emits its own files sorted by ``sort_config``, then visits
    its child folders, sorted by the same configuration.
    """
    result: list[DocumentRecord] = []
    stack: list[FolderNode] = [root]

    while stack:
        node = stack.pop()
        result.extend(sort_files(node.files, sort_config))
        stack.extend(reversed(sort_folders(node.children.values(), sort_config)))

    return result


def normalize_page_path(path: str) -> str:
    """Canonical page paths always end with a slash."""
    return path if path.endswith("/") else path + "/"


def find_neighbors(
    sequence: Sequence[DocumentRecord],
    current_path: str,
) -> NavigationNeighbors | None:
    """
    Previous and next documents around ``current_path``.

    Returns None when the path is not part of the sequence. The first
    document has no previous and the last has no next.
    """
    target = normalize_page_path(current_path)
    for index, record in enumerate(sequence):
        if normalize_page_path(record.url_path) != target:
            continue
        previous = sequence[index - 1] if index > 0 else None
        following = sequence[index + 1] if index < len(sequence) - 1 else None
        return NavigationNeighbors(previous=previous, next=following)
    return None


@dataclass(frozen=True)
class NavigationIndex:
    """Folder tree and reading order derived from one document index snapshot."""

    tree: FolderNode
    sequence: tuple[DocumentRecord, ...]
    sort_config: tuple[SortField, ...]

    def neighbors(self, current_path: str) -> NavigationNeighbors | None:
        return find_neighbors(self.sequence, current_path)

    def expanded_folders(self, current_path: str) -> list[FolderNode]:
        """Folders to expand so the current page is visible in the tree."""
        return folder_chain(self.tree, current_path)


def build_navigation(
    records: Iterable[DocumentRecord],
    sort_config: Sequence[SortField] | None = None,
    index_file: str = DEFAULT_INDEX_FILE,
) -> NavigationIndex:
    """Build the tree and reading order for a record set in one step."""
    config = tuple(sort_config or DEFAULT_SORT_CONFIG)
    tree = build_folder_tree(records, index_file=index_file)
    sequence = tuple(flatten_to_linear_sequence(tree, config))

    logger.debug(
        "Built navigation index",
        extra={
            "document_count": len(sequence),
            "sort_fields": [spec.field for spec in config],
        },
    )
    return NavigationIndex(tree=tree, sequence=sequence, sort_config=config)
