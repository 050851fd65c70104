"""Tests for YAML + environment settings loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from docnav.config import (
    Settings,
    StaticRankingSettings,
    expand_env_vars,
    load_config_from_yaml,
    load_settings,
)
from docnav.exceptions import ConfigurationError
from docnav.models.document import SortField
from docnav.models.search import ExecutionMode


def write_config(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "docnav.yaml"
    path.write_text(content)
    return path


def test_defaults_without_config_file() -> None:
    settings = load_settings()

    assert settings.execution_mode == ExecutionMode.LIVE
    assert settings.site_index_url == "/.docnav/site.json"
    assert settings.search_endpoint == "/.docnav/search"
    assert settings.search_result_limit == 20
    assert settings.debounce_seconds == 0.15
    assert settings.min_query_length == 2
    assert settings.index_file == "index.md"
    assert settings.sort == [SortField(field="title")]
    assert settings.static_ranking == StaticRankingSettings()
    assert settings.log_level == "INFO"


def test_load_settings_from_yaml(tmp_path: Path) -> None:
    path = write_config(
        tmp_path,
        """
mode: static
base_url: http://localhost:5200
index:
  url: /site.json
  index_file: README.md
search:
  limit: 50
  debounce_ms: 250
  min_query_length: 3
  timeout_seconds: 2.5
  static_module: site_index
  ranking:
    term_frequency: 0.8
sort:
  - field: order
    order: asc
    compare: numeric
  - field: title
logging:
  level: debug
  json: false
""",
    )

    settings = load_settings(path)

    assert settings.execution_mode == ExecutionMode.STATIC
    assert settings.resolve_url(settings.site_index_url) == "http://localhost:5200/site.json"
    assert settings.index_file == "README.md"
    assert settings.search_result_limit == 50
    assert settings.debounce_seconds == 0.25
    assert settings.min_query_length == 3
    assert settings.request_timeout_seconds == 2.5
    assert settings.static_index_module == "site_index"
    assert settings.static_ranking.term_frequency == 0.8
    assert settings.static_ranking.term_saturation == 2.0
    assert settings.sort == [
        SortField(field="order", direction="asc", comparison="numeric"),
        SortField(field="title"),
    ]
    assert settings.log_level == "DEBUG"
    assert settings.log_json is False


def test_config_path_from_environment(tmp_path: Path, monkeypatch) -> None:
    path = write_config(tmp_path, "search:\n  limit: 7\n")
    monkeypatch.setenv("DOCNAV_CONFIG", str(path))

    assert load_settings().search_result_limit == 7


def test_environment_variables_override_defaults(monkeypatch) -> None:
    monkeypatch.setenv("DOCNAV_EXECUTION_MODE", "static")
    monkeypatch.setenv("DOCNAV_SEARCH_RESULT_LIMIT", "5")

    settings = load_settings()

    assert settings.execution_mode == ExecutionMode.STATIC
    assert settings.search_result_limit == 5


def test_env_var_expansion_skips_comments(monkeypatch) -> None:
    monkeypatch.setenv("DOCS_HOST", "http://docs.test")

    expanded = expand_env_vars("# uses ${NOT_SET}\nbase_url: ${DOCS_HOST}")

    assert expanded == "# uses ${NOT_SET}\nbase_url: http://docs.test"


def test_missing_env_var_is_configuration_error(tmp_path: Path) -> None:
    path = write_config(tmp_path, "base_url: ${DOCNAV_TEST_UNSET_HOST}\n")

    with pytest.raises(ConfigurationError, match="DOCNAV_TEST_UNSET_HOST"):
        load_settings(path)


def test_invalid_yaml_is_configuration_error(tmp_path: Path) -> None:
    path = write_config(tmp_path, "search: [unclosed\n")

    with pytest.raises(ConfigurationError) as exc_info:
        load_config_from_yaml(path)

    assert exc_info.value.context["config_file"] == str(path)


def test_non_mapping_root_is_configuration_error(tmp_path: Path) -> None:
    path = write_config(tmp_path, "- a\n- b\n")

    with pytest.raises(ConfigurationError):
        load_config_from_yaml(path)


def test_empty_file_gives_defaults(tmp_path: Path) -> None:
    path = write_config(tmp_path, "")

    assert load_config_from_yaml(path) == {}
    assert load_settings(path).search_result_limit == 20


def test_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_settings(tmp_path / "absent.yaml")


def test_invalid_values_are_configuration_error(tmp_path: Path) -> None:
    path = write_config(tmp_path, "logging:\n  level: LOUD\n")

    with pytest.raises(ConfigurationError, match="Configuration validation error"):
        load_settings(path)


def test_empty_sort_uses_default() -> None:
    assert Settings(sort=[]).sort == [SortField(field="title")]


def test_static_ranking_options() -> None:
    assert StaticRankingSettings().to_index_options() == {
        "baseUrl": "/",
        "ranking": {"termFrequency": 0.5, "pageLength": 0.0, "termSaturation": 2.0},
    }


def test_resolve_url() -> None:
    assert Settings().resolve_url("/.docnav/search") == "/.docnav/search"
    assert (
        Settings(base_url="http://localhost:5200/").resolve_url("/.docnav/search")
        == "http://localhost:5200/.docnav/search"
    )
    assert Settings(base_url="http://a.test").resolve_url("https://b.test/x") == "https://b.test/x"
