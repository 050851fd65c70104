"""
Folder tree construction from the flat document index.

The tree is a pure derived value: it is rebuilt from the full record set on
every refresh and never patched in place.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from docnav.models.document import DEFAULT_INDEX_FILE, DocumentRecord
from docnav.models.folder_tree import FolderNode
from docnav.services.ordering import frontmatter_value_to_str

logger = logging.getLogger(__name__)

ROOT_PATH = "/"


def path_segments(url_path: str) -> list[str]:
    """Split a canonical path into its non-empty segments."""
    return [part for part in url_path.split("/") if part]


def source_file_name(raw_path: str) -> str:
    """Last segment of a source path, accepting either separator."""
    return raw_path.replace("\\", "/").rsplit("/", 1)[-1]


def _folder_path(parts: list[str]) -> str:
    if not parts:
        return ROOT_PATH
    return "/" + "/".join(parts) + "/"


def _child(node: FolderNode, parts: list[str]) -> FolderNode:
    """Get or create the child of ``node`` named by the last of ``parts``."""
    name = parts[-1]
    child = node.children.get(name)
    if child is None:
        child = FolderNode(name=name, path=_folder_path(parts))
        node.children[name] = child
    return child


def _promote_index_metadata(folder: FolderNode, record: DocumentRecord) -> None:
    """Index documents give their folder its title and sortable frontmatter."""
    if not record.frontmatter:
        return
    folder.frontmatter = record.frontmatter
    title = frontmatter_value_to_str(record.frontmatter.get("title"))
    if title:
        folder.title = title


def _count_descendants(node: FolderNode) -> int:
    count = len(node.files)
    for child in node.children.values():
        count += _count_descendants(child)
    node.descendant_count = count
    return count


def build_folder_tree(
    records: Iterable[DocumentRecord],
    index_file: str = DEFAULT_INDEX_FILE,
) -> FolderNode:
    """
    Build the folder hierarchy for a set of documents.

    Every segment but the last of a record's canonical path names a folder.
    A record whose source file is the index file describes the folder named
    by its full path: its frontmatter becomes the folder's metadata and it is
    listed among that folder's files. Records whose path has no segments land
    at the root, so no record is ever dropped.

    Args:
        records: Full document record set
        index_file: File name that marks a folder's index document

    Returns:
        Root FolderNode with descendant counts computed
    """
    root = FolderNode(name="", path=ROOT_PATH)
    record_count = 0

    for record in records:
        record_count += 1
        parts = path_segments(record.url_path)
        current = root

        for depth in range(len(parts) - 1):
            current = _child(current, parts[: depth + 1])

        if source_file_name(record.raw_path) == index_file:
            target = _child(current, parts) if parts else current
            _promote_index_metadata(target, record)
            target.files.append(record)
            continue

        current.files.append(record)

    _count_descendants(root)

    logger.debug(
        "Built folder tree",
        extra={
            "record_count": record_count,
            "folder_count": sum(1 for _ in iter_folders(root)),
            "index_file": index_file,
        },
    )
    return root


def iter_folders(root: FolderNode) -> Iterator[FolderNode]:
    """Yield every folder in the tree, pre-order, in insertion order."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(list(node.children.values())))


def find_folder(root: FolderNode, path: str) -> FolderNode | None:
    """Look up a folder by canonical path ("/a/b/" or "/a/b")."""
    node = root
    for part in path_segments(path):
        child = node.children.get(part)
        if child is None:
            return None
        node = child
    return node


def folder_chain(root: FolderNode, path: str) -> list[FolderNode]:
    """Folders from the root down to the deepest existing folder on ``path``."""
    chain = [root]
    node = root
    for part in path_segments(path):
        child = node.children.get(part)
        if child is None:
            break
        chain.append(child)
        node = child
    return chain
