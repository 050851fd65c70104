"""Models for docnav."""

from docnav.models.document import (
    DEFAULT_SORT_CONFIG,
    DocumentRecord,
    SiteIndex,
    SortField,
)
from docnav.models.folder_tree import FolderNode, NavigationNeighbors
from docnav.models.search import (
    DispatcherSnapshot,
    ExecutionMode,
    FiletypeFilter,
    FolderScope,
    QueryContext,
    SearchOutcome,
    SearchResult,
    SearchScope,
    SearchState,
)

__all__ = [
    "DEFAULT_SORT_CONFIG",
    "DispatcherSnapshot",
    "DocumentRecord",
    "ExecutionMode",
    "FiletypeFilter",
    "FolderNode",
    "FolderScope",
    "NavigationNeighbors",
    "QueryContext",
    "SearchOutcome",
    "SearchResult",
    "SearchScope",
    "SearchState",
    "SiteIndex",
    "SortField",
]
