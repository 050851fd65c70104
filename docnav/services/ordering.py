"""
Configurable ordering shared by the folder tree and the reading sequence.

Files and folders resolve sort fields through the same rules, so one sort
configuration orders both. Values missing on an entity always sort after
present values, whatever the requested direction.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterable, Sequence
from functools import cmp_to_key
from typing import Any, TypeVar

from pydantic import ValidationError as PydanticValidationError

from docnav.exceptions import ValidationError
from docnav.models.document import DEFAULT_SORT_CONFIG, DocumentRecord, SortField
from docnav.models.folder_tree import FolderNode

logger = logging.getLogger(__name__)

Entity = DocumentRecord | FolderNode
E = TypeVar("E", DocumentRecord, FolderNode)

RESERVED_FIELDS = frozenset({"title", "filename", "created", "modified"})

# Leading numeric prefix, the way parseFloat reads "12px" as 12
_NUMERIC_PREFIX = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def file_name(url_path: str) -> str:
    """
    Last segment of a canonical path.

    "/docs/guide/intro/" -> "intro", "/README/" -> "README", "/" -> "".
    """
    normalized = url_path[:-1] if url_path.endswith("/") else url_path
    return normalized[normalized.rfind("/") + 1 :]


def _format_number(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def frontmatter_value_to_str(value: Any) -> str | None:
    """
    Convert a raw frontmatter value into its sortable string form.

    Booleans become "1"/"0" so a numeric sort can put pinned entries first.
    Lists join their scalar elements with commas; mappings are not sortable.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float)):
        return _format_number(value)
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        return None
    if isinstance(value, (list, tuple)):
        parts = [frontmatter_value_to_str(item) for item in value]
        return ",".join(part for part in parts if part is not None)
    return str(value)


def _frontmatter_field(frontmatter: dict[str, Any] | None, name: str) -> str | None:
    if not frontmatter or name not in frontmatter:
        return None
    return frontmatter_value_to_str(frontmatter[name])


def resolve_file_field(record: DocumentRecord, name: str) -> str | None:
    """Resolve a sort field on a document; None means the value is missing."""
    if name == "title":
        title = _frontmatter_field(record.frontmatter, "title")
        if title is not None:
            return title
        return file_name(record.url_path)
    if name == "filename":
        return file_name(record.url_path)
    if name == "created":
        return _format_number(record.created)
    if name == "modified":
        return _format_number(record.modified)
    return _frontmatter_field(record.frontmatter, name)


def resolve_folder_field(folder: FolderNode, name: str) -> str | None:
    """Resolve a sort field on a folder using its index document's metadata."""
    if name == "title":
        return folder.title or folder.name
    if name == "filename":
        return folder.name
    if name in ("created", "modified"):
        return None
    return _frontmatter_field(folder.frontmatter, name)


def resolve_field(entity: Entity, name: str) -> str | None:
    """Resolve a sort field on either a document or a folder."""
    if isinstance(entity, FolderNode):
        return resolve_folder_field(entity, name)
    return resolve_file_field(entity, name)


def parse_number(value: str) -> float:
    """Parse the leading number of a string; anything unparsable counts as zero."""
    match = _NUMERIC_PREFIX.match(value)
    if match is None:
        return 0.0
    number = float(match.group(1))
    if math.isnan(number):
        return 0.0
    return number


def _sign(value: float) -> int:
    if value < 0:
        return -1
    if value > 0:
        return 1
    return 0


def compare_values(value_a: str | None, value_b: str | None, spec: SortField) -> int:
    """
    Compare two resolved values under one sort step.

    Returns -1, 0 or 1. Missing values come last regardless of direction;
    only the present/present comparison is reversed for "desc".
    """
    if value_a is None and value_b is None:
        return 0
    if value_a is None:
        return 1
    if value_b is None:
        return -1

    if spec.comparison == "numeric":
        cmp = _sign(parse_number(value_a) - parse_number(value_b))
    else:
        folded_a = value_a.casefold()
        folded_b = value_b.casefold()
        cmp = (folded_a > folded_b) - (folded_a < folded_b)

    return -cmp if spec.direction == "desc" else cmp


def compare(a: Entity, b: Entity, sort_config: Sequence[SortField]) -> int:
    """Compare two entities by each sort step in turn; the first non-zero step wins."""
    for spec in sort_config:
        cmp = compare_values(resolve_field(a, spec.field), resolve_field(b, spec.field), spec)
        if cmp != 0:
            return cmp
    return 0


def sort_entities(entities: Iterable[E], sort_config: Sequence[SortField]) -> list[E]:
    """Stable sort returning a new list; equal entities keep their input order."""
    config = sort_config or DEFAULT_SORT_CONFIG
    return sorted(entities, key=cmp_to_key(lambda a, b: compare(a, b, config)))


def sort_files(
    files: Iterable[DocumentRecord], sort_config: Sequence[SortField]
) -> list[DocumentRecord]:
    """Sort documents with the configured multi-field order."""
    return sort_entities(files, sort_config)


def sort_folders(folders: Iterable[FolderNode], sort_config: Sequence[SortField]) -> list[FolderNode]:
    """Sort folders with the configured multi-field order."""
    return sort_entities(folders, sort_config)


def parse_sort_config(raw: Any) -> list[SortField]:
    """
    Validate a raw sort configuration (as read from YAML or JSON).

    Args:
        raw: List of mappings with field/order/compare keys, or None

    Returns:
        List of SortField; the default configuration when raw is empty

    Raises:
        ValidationError: If the configuration is not a list or an entry is invalid
    """
    if not raw:
        return list(DEFAULT_SORT_CONFIG)

    if not isinstance(raw, list):
        msg = "Sort configuration must be a list"
        raise ValidationError(msg, context={"type": type(raw).__name__})

    config: list[SortField] = []
    for position, entry in enumerate(raw):
        if isinstance(entry, SortField):
            config.append(entry)
            continue
        try:
            config.append(SortField.model_validate(entry))
        except PydanticValidationError as exc:
            msg = "Invalid sort field"
            raise ValidationError(
                msg,
                context={
                    "position": position,
                    "entry": entry,
                    "detail": str(exc),
                },
            ) from exc

    logger.debug(
        "Parsed sort configuration",
        extra={"fields": [spec.field for spec in config]},
    )
    return config
