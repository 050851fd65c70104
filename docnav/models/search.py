"""Models for federated search."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SearchScope(str, Enum):
    """Which fields the live backend searches."""

    ALL = "all"
    METADATA = "metadata"
    CONTENT = "content"


class FolderScope(str, Enum):
    """Restrict the search to the current folder or search everywhere."""

    CURRENT = "current"
    EVERYWHERE = "everywhere"


class FiletypeFilter(str, Enum):
    """Restrict results to markdown documents or include every file kind."""

    MARKDOWN = "markdown"
    ALL = "all"


class ExecutionMode(str, Enum):
    """Execution context the site is running in."""

    LIVE = "live"
    STATIC = "static"


class SearchState(str, Enum):
    """Lifecycle of the dispatcher's current query slot."""

    IDLE = "idle"
    DEBOUNCING = "debouncing"
    IN_FLIGHT = "in_flight"
    SETTLED = "settled"
    CANCELLED = "cancelled"
    FAILED = "failed"


def folder_for_page(page_path: str) -> str:
    """
    Folder a page searches from when the folder scope is "current".

    Section pages (trailing slash) search from their own path; other
    pages search from their parent folder.
    """
    if page_path.endswith("/"):
        return page_path
    last_slash = page_path.rfind("/")
    if last_slash > 0:
        return page_path[: last_slash + 1]
    return "/"


class QueryContext(BaseModel):
    """Everything needed to dispatch one search query."""

    raw_query: str = Field(..., description="Query text as typed")
    scope: SearchScope = Field(SearchScope.ALL, description="Live-only search scope")
    folder_scope: FolderScope = Field(FolderScope.EVERYWHERE, description="Folder restriction")
    filetype_filter: FiletypeFilter = Field(FiletypeFilter.MARKDOWN, description="Filetype filter")
    execution_mode: ExecutionMode = Field(ExecutionMode.LIVE, description="Live or static")
    current_folder: str = Field("/", description="Folder of the page issuing the query")

    model_config = ConfigDict(frozen=True)


class SearchResult(BaseModel):
    """A search hit normalized across backends."""

    url_path: str = Field(..., description="Canonical path of the matching document")
    title: str | None = Field(None, description="Document title")
    description: str | None = Field(None, description="Frontmatter description")
    tags: str | None = Field(None, description="Comma-separated tags as stored")
    score: float = Field(0, description="Backend-local score; never compared across backends")
    snippet: str | None = Field(None, description="Plain-text snippet")
    snippet_html: str | None = Field(None, description="Snippet with <mark> highlights")
    is_content_match: bool = Field(False, description="Matched on content rather than metadata")
    filetype: str = Field("markdown", description="File kind")

    model_config = ConfigDict(frozen=True)

    @property
    def tag_list(self) -> list[str]:
        """Tags split for display."""
        if not self.tags:
            return []
        return [tag.strip() for tag in self.tags.split(",") if tag.strip()]


class SearchOutcome(BaseModel):
    """Settled result of one query."""

    query: str
    results: list[SearchResult] = Field(default_factory=list)
    total_matches: int = 0
    duration_ms: int = 0


class LiveSearchRequest(BaseModel):
    """Request body for the live search endpoint."""

    q: str = Field(..., description="Search query")
    limit: int = Field(20, description="Maximum results to return")
    scope: SearchScope = Field(SearchScope.ALL)
    folder_scope: FolderScope = Field(FolderScope.EVERYWHERE)
    folder: str | None = Field(None, description="Folder path when folder_scope is current")
    filetype: str | None = Field(None, description="'all' to include non-markdown files")


class LiveSearchResponse(BaseModel):
    """Response payload from the live search endpoint."""

    query: str = ""
    total_matches: int = 0
    results: list[SearchResult] = Field(default_factory=list)
    duration_ms: int = 0
    error: str | None = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("results", mode="before")
    @classmethod
    def none_as_empty(cls, value: object) -> object:
        if value is None:
            return []
        return value


@dataclass(frozen=True)
class DispatcherSnapshot:
    """Visible state of a search dispatcher."""

    query: str = ""
    state: SearchState = SearchState.IDLE
    results: tuple[SearchResult, ...] = field(default_factory=tuple)
    total_matches: int = 0
    duration_ms: int = 0
    error: str | None = None
    error_detail: dict[str, object] | None = None
    index_not_built: bool = False

    @property
    def is_loading(self) -> bool:
        return self.state in (SearchState.DEBOUNCING, SearchState.IN_FLIGHT)
