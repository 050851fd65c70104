import logging
import os
import sys
import tempfile
import types
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from docnav.models.document import DocumentRecord

# Keep a developer's own settings file out of the test run
os.environ.pop("DOCNAV_CONFIG", None)


@pytest.fixture(autouse=True)
def clear_docnav_env(monkeypatch):
    """Remove DOCNAV_* variables so settings tests start from defaults."""
    for key in list(os.environ):
        if key.startswith("DOCNAV_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def propagate_docnav_logs():
    """configure_json_logging replaces root handlers; restore them for caplog."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def make_record() -> Callable[..., DocumentRecord]:
    """Factory for DocumentRecord with sensible defaults.

    The raw path defaults to the url path plus ".md", or "<path>/index.md"
    when ``index=True``.
    """

    def factory(
        url_path: str,
        title: str | None = None,
        *,
        index: bool = False,
        created: float = 0,
        modified: float = 0,
        **frontmatter: Any,
    ) -> DocumentRecord:
        stripped = url_path.strip("/")
        if index:
            raw_path = f"{stripped}/index.md" if stripped else "index.md"
        else:
            raw_path = f"{stripped}.md"
        if title is not None:
            frontmatter["title"] = title
        return DocumentRecord(
            url_path=url_path,
            raw_path=raw_path,
            created=created,
            modified=modified,
            frontmatter=frontmatter or None,
        )

    return factory


@pytest.fixture
def sample_records(make_record) -> list[DocumentRecord]:
    """A small site: home page, a guide section with two pages and a nested section."""
    return [
        make_record("/", "Home", index=True),
        make_record("/about/", "About"),
        make_record("/guide/", "Guide", index=True, order=1),
        make_record("/guide/install/", "Install", order=1),
        make_record("/guide/usage/", "Usage", order=2),
        make_record("/guide/advanced/", "Advanced", index=True),
        make_record("/guide/advanced/plugins/", "Plugins"),
        make_record("/reference/api/", "API"),
    ]


@pytest.fixture
def temp_site():
    """Create a temporary site root with markdown files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir) / "site"
        root.mkdir()
        (root / "index.md").write_text("---\ntitle: Home\n---\n\nWelcome\n")
        (root / "docs").mkdir()
        (root / "docs" / "index.md").write_text("---\ntitle: Docs\norder: 1\n---\n\n# Docs\n")
        (root / "docs" / "intro.md").write_text(
            "---\ntitle: Introduction\ndate: 2024-01-15\ntags: [start, basics]\n---\n\nHello\n"
        )
        (root / "docs" / "plain.md").write_text("No frontmatter here\n")
        (root / "notes.txt").write_text("not markdown\n")
        (root / ".hidden").mkdir()
        (root / ".hidden" / "secret.md").write_text("# Hidden\n")
        (root / "node_modules").mkdir()
        (root / "node_modules" / "pkg.md").write_text("# Vendored\n")
        yield root


INDEX_PAGES = [
    {"url": "/docs/intro/", "excerpt": "the <mark>intro</mark>", "meta": {"title": "Intro"}},
    {"url": "/docs/setup/", "excerpt": "setup <mark>intro</mark>", "meta": {"title": "Setup"}},
    {"url": "/blog/", "excerpt": "", "meta": {}},
]


@pytest.fixture
def fake_index_module(monkeypatch) -> Callable[..., types.ModuleType]:
    """Register an in-memory stand-in for a generated static index module.

    The module records its calls in ``module.calls``.
    """

    def factory(
        name: str,
        pages: list[dict] | None = None,
        fail_init: bool = False,
    ) -> types.ModuleType:
        pages = INDEX_PAGES if pages is None else pages
        module = types.ModuleType(name)
        module.calls = {"options": [], "init": 0, "search": []}

        def options(config):
            module.calls["options"].append(config)

        async def init():
            module.calls["init"] += 1
            if fail_init:
                raise RuntimeError("index files missing")

        async def search(query):
            module.calls["search"].append(query)

            def handle(page):
                async def data():
                    return page

                return {"data": data}

            return {"results": [handle(page) for page in pages]}

        module.options = options
        module.init = init
        module.search = search
        monkeypatch.setitem(sys.modules, name, module)
        return module

    return factory
