"""Tests for building a document index from a directory of markdown files."""

from __future__ import annotations

from pathlib import Path

import pytest

from docnav.models.document import SiteIndex, SortField
from docnav.services.document_scan import build_site_index, build_url_path, scan_documents
from docnav.services.sequence import build_navigation


@pytest.mark.parametrize(
    ("relative", "expected"),
    [
        ("index.md", "/"),
        ("docs/index.md", "/docs/"),
        ("docs/intro.md", "/docs/intro/"),
        ("docs\\guide\\setup.md", "/docs/guide/setup/"),
        ("v1.2/notes.md", "/v1.2/notes/"),
    ],
)
def test_build_url_path(relative, expected) -> None:
    assert build_url_path(relative) == expected


def test_build_url_path_custom_index_file() -> None:
    assert build_url_path("docs/README.md", index_file="README.md") == "/docs/"


def test_scan_documents_finds_markdown(temp_site: Path) -> None:
    records = scan_documents(temp_site)

    by_path = {record.url_path: record for record in records}
    assert sorted(by_path) == ["/", "/docs/", "/docs/intro/", "/docs/plain/"]
    assert by_path["/docs/"].raw_path == "docs/index.md"
    assert by_path["/docs/"].frontmatter == {"title": "Docs", "order": 1}
    assert by_path["/docs/intro/"].frontmatter["date"] == "2024-01-15"
    assert by_path["/docs/intro/"].frontmatter["tags"] == ["start", "basics"]
    assert by_path["/docs/plain/"].frontmatter is None
    assert by_path["/docs/intro/"].modified > 0


def test_scan_documents_invalid_frontmatter_is_tolerated(tmp_path: Path, caplog) -> None:
    (tmp_path / "broken.md").write_text("---\ntitle: [unclosed\n---\nBody\n")

    records = scan_documents(tmp_path)

    assert len(records) == 1
    assert records[0].frontmatter is None
    assert "Ignoring invalid frontmatter" in caplog.text


def test_scan_documents_rejects_missing_root(tmp_path: Path) -> None:
    with pytest.raises(NotADirectoryError):
        scan_documents(tmp_path / "missing")


def test_build_site_index_round_trips_through_json(temp_site: Path) -> None:
    site_index = build_site_index(
        temp_site,
        sort_config=[{"field": "order", "order": "asc", "compare": "numeric"}],
    )

    payload = site_index.model_dump_json(by_alias=True)
    restored = SiteIndex.model_validate_json(payload)

    assert restored.sort == [SortField(field="order", direction="asc", comparison="numeric")]
    assert '"order":"asc"' in payload
    assert len(restored.markdown_files) == 4


def test_scanned_site_navigation(temp_site: Path) -> None:
    site_index = build_site_index(temp_site)

    navigation = build_navigation(site_index.markdown_files, site_index.sort)

    assert navigation.tree.descendant_count == 4
    assert navigation.tree.title == "Home"
    assert navigation.tree.children["docs"].title == "Docs"
    assert [r.url_path for r in navigation.sequence] == ["/", "/docs/", "/docs/intro/", "/docs/plain/"]
