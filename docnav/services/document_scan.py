"""
Build a document index from a directory of markdown files.

Hosts without a prebuilt site index resource can scan the site root and
serialize the result with ``SiteIndex.model_dump_json(by_alias=True)``.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import Any

from docnav.models.document import DEFAULT_INDEX_FILE, DocumentRecord, SiteIndex, SortField
from docnav.services.ordering import parse_sort_config
from docnav.utils.error_handling import log_errors
from docnav.utils.frontmatter import FrontmatterError, parse_frontmatter

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = (".md",)
DEFAULT_IGNORE_DIRS = (".git", "node_modules")


def build_url_path(relative_path: str, index_file: str = DEFAULT_INDEX_FILE) -> str:
    """
    Canonical URL path for a markdown file relative to the site root.

    "docs/index.md" -> "/docs/", "docs/intro.md" -> "/docs/intro/",
    "index.md" -> "/".
    """
    url = relative_path.replace("\\", "/")
    if not url.startswith("/"):
        url = "/" + url

    if url.endswith("/" + index_file):
        url = url[: -len(index_file)]

    base, dot, extension = url.rpartition(".")
    if dot and "/" not in extension:
        url = base + "/"

    return url


def _iter_markdown_files(
    root: Path,
    extensions: Sequence[str],
    ignore_dirs: Sequence[str],
) -> Iterator[Path]:
    excluded = set(ignore_dirs)
    suffixes = {ext.lower() for ext in extensions}
    for current, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(
            name for name in dirnames if name not in excluded and not name.startswith(".")
        )
        for filename in sorted(filenames):
            if filename.startswith("."):
                continue
            path = Path(current) / filename
            if path.suffix.lower() in suffixes:
                yield path


def _read_frontmatter(path: Path) -> dict[str, Any] | None:
    try:
        content = path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        logger.warning(
            "Unreadable markdown file",
            extra={"path": str(path), "error": str(exc)},
        )
        return None

    try:
        parsed = parse_frontmatter(content)
    except FrontmatterError:
        logger.warning("Ignoring invalid frontmatter", extra={"path": str(path)})
        return None

    if not parsed.frontmatter:
        return None
    return {str(key): value for key, value in parsed.frontmatter.items()}


@log_errors("scan_documents")
def scan_documents(
    root: str | Path,
    index_file: str = DEFAULT_INDEX_FILE,
    extensions: Sequence[str] = DEFAULT_EXTENSIONS,
    ignore_dirs: Sequence[str] = DEFAULT_IGNORE_DIRS,
) -> list[DocumentRecord]:
    """
    Scan a site root for markdown documents.

    Hidden files and folders and ``ignore_dirs`` are skipped. Timestamps come
    from the filesystem; created falls back to modified where the platform
    has no birth time.

    Raises:
        NotADirectoryError: If ``root`` is not a directory
    """
    root_path = Path(root).resolve()
    if not root_path.is_dir():
        msg = f"Site root is not a directory: {root}"
        raise NotADirectoryError(msg)

    records: list[DocumentRecord] = []
    for path in _iter_markdown_files(root_path, extensions, ignore_dirs):
        relative = path.relative_to(root_path).as_posix()
        stat = path.stat()
        created = getattr(stat, "st_birthtime", stat.st_mtime)
        records.append(
            DocumentRecord(
                url_path=build_url_path(relative, index_file),
                raw_path=relative,
                created=int(created),
                modified=int(stat.st_mtime),
                frontmatter=_read_frontmatter(path),
            )
        )

    logger.info(
        "Scanned documents",
        extra={"root": str(root_path), "document_count": len(records)},
    )
    return records


def build_site_index(
    root: str | Path,
    sort_config: Sequence[SortField] | list[dict[str, Any]] | None = None,
    index_file: str = DEFAULT_INDEX_FILE,
) -> SiteIndex:
    """Scan ``root`` and wrap the records with the sort and index-file settings."""
    return SiteIndex(
        markdown_files=scan_documents(root, index_file=index_file),
        sort=parse_sort_config(list(sort_config) if sort_config else None),
        index_file=index_file,
    )
