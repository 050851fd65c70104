"""Tests for boundary models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from docnav.models.document import DocumentRecord, SiteIndex, SortField
from docnav.models.search import (
    DispatcherSnapshot,
    LiveSearchResponse,
    SearchResult,
    SearchState,
    folder_for_page,
)


def test_document_record_is_immutable() -> None:
    record = DocumentRecord(url_path="/a/", raw_path="a.md")

    with pytest.raises(ValidationError):
        record.url_path = "/b/"


def test_document_record_requires_url_path() -> None:
    with pytest.raises(ValidationError):
        DocumentRecord.model_validate({"raw_path": "a.md"})


def test_sort_field_wire_names() -> None:
    spec = SortField.model_validate({"field": "modified", "order": "desc"})

    assert spec.direction == "desc"
    assert spec.comparison == "string"
    assert spec.model_dump(by_alias=True) == {
        "field": "modified",
        "order": "desc",
        "compare": "string",
    }


def test_site_index_defaults() -> None:
    site_index = SiteIndex.model_validate({"markdown_files": None, "sort": None, "index_file": ""})

    assert site_index.markdown_files == []
    assert site_index.sort == [SortField(field="title")]
    assert site_index.index_file == "index.md"


def test_site_index_rejects_non_list_records() -> None:
    with pytest.raises(ValidationError):
        SiteIndex.model_validate({"markdown_files": {"url_path": "/"}})


@pytest.mark.parametrize(
    ("page", "folder"),
    [
        ("/docs/guide/", "/docs/guide/"),
        ("/docs/guide/setup", "/docs/guide/"),
        ("/about", "/"),
        ("/", "/"),
    ],
)
def test_folder_for_page(page, folder) -> None:
    assert folder_for_page(page) == folder


def test_search_result_tag_list() -> None:
    assert SearchResult(url_path="/a/", tags="one, two,,three ").tag_list == ["one", "two", "three"]
    assert SearchResult(url_path="/a/").tag_list == []


def test_live_response_ignores_unknown_fields() -> None:
    response = LiveSearchResponse.model_validate({"results": [], "took": 3})

    assert response.results == []
    assert response.error is None


def test_snapshot_loading_states() -> None:
    assert DispatcherSnapshot(state=SearchState.DEBOUNCING).is_loading
    assert DispatcherSnapshot(state=SearchState.IN_FLIGHT).is_loading
    assert not DispatcherSnapshot(state=SearchState.SETTLED).is_loading
    assert not DispatcherSnapshot().is_loading
