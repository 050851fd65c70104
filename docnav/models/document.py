"""Models for the document index resource."""

from __future__ import annotations

import logging
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

logger = logging.getLogger(__name__)

SortDirection = Literal["asc", "desc"]
ComparisonKind = Literal["string", "numeric"]

DEFAULT_INDEX_FILE = "index.md"


class DocumentRecord(BaseModel):
    """A single markdown document known to the site."""

    url_path: str = Field(..., description="Canonical site-relative path")
    raw_path: str = Field("", description="Source path relative to the site root")
    created: float = Field(0, description="Creation timestamp")
    modified: float = Field(0, description="Last modified timestamp")
    frontmatter: dict[str, Any] | None = Field(None, description="Parsed frontmatter")

    model_config = ConfigDict(frozen=True)

    @field_validator("frontmatter", mode="before")
    @classmethod
    def drop_non_mapping_frontmatter(cls, value: Any) -> dict[str, Any] | None:
        """Frontmatter that is not a mapping carries no sortable fields."""
        if isinstance(value, dict):
            return value
        return None

    @field_validator("raw_path", mode="before")
    @classmethod
    def coerce_raw_path(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value)


class SortField(BaseModel):
    """One step of a multi-field sort configuration."""

    field: str = Field(..., description="title, filename, created, modified or a frontmatter key")
    direction: SortDirection = Field("asc", alias="order", description="Sort direction")
    comparison: ComparisonKind = Field("string", alias="compare", description="Comparison kind")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


DEFAULT_SORT_CONFIG: list[SortField] = [
    SortField(field="title", direction="asc", comparison="string"),
]


class SiteIndex(BaseModel):
    """The document index resource: every record plus its sort and index-file settings."""

    markdown_files: list[DocumentRecord] = Field(default_factory=list)
    sort: list[SortField] = Field(default_factory=lambda: list(DEFAULT_SORT_CONFIG))
    index_file: str = Field(DEFAULT_INDEX_FILE)

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("markdown_files", mode="before")
    @classmethod
    def skip_malformed_records(cls, value: Any) -> list[Any]:
        """Tolerate malformed individual records instead of rejecting the whole index."""
        if value is None:
            return []
        if not isinstance(value, list):
            msg = "markdown_files must be a list"
            raise ValueError(msg)

        records: list[DocumentRecord] = []
        for position, entry in enumerate(value):
            if isinstance(entry, DocumentRecord):
                records.append(entry)
                continue
            try:
                records.append(DocumentRecord.model_validate(entry))
            except PydanticValidationError as exc:
                logger.warning(
                    "Skipping malformed document record",
                    extra={
                        "position": position,
                        "error_count": exc.error_count(),
                    },
                )
        return records

    @field_validator("sort", mode="before")
    @classmethod
    def default_when_empty(cls, value: Any) -> Any:
        if not value:
            return list(DEFAULT_SORT_CONFIG)
        return value

    @field_validator("index_file", mode="before")
    @classmethod
    def default_index_file(cls, value: Any) -> Any:
        if not value:
            return DEFAULT_INDEX_FILE
        return value
