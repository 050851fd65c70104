"""
Search backends for the two execution modes.

``LiveBackend`` queries the running server's search endpoint.
``StaticBackend`` queries a precomputed index module loaded on first use.
Both return the same normalized ``SearchOutcome``; the set of backends is
closed, so they share a shape rather than a base class.
"""

from __future__ import annotations

import asyncio
import importlib
import inspect
import logging
import time
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from docnav.config import StaticRankingSettings
from docnav.exceptions import IndexNotBuiltError, SearchError
from docnav.models.search import (
    ExecutionMode,
    FiletypeFilter,
    FolderScope,
    LiveSearchRequest,
    LiveSearchResponse,
    QueryContext,
    SearchOutcome,
    SearchResult,
)

if TYPE_CHECKING:
    from types import ModuleType

    from docnav.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_RESULT_LIMIT = 20
STATIC_DEBOUNCE_SECONDS = 0.15
INDEX_NOT_BUILT_MESSAGE = (
    "Search index not available. Build the static site and generate the "
    "search index before searching."
)


class LiveBackend:
    """Backend for live mode: one POST per query to the search endpoint."""

    mode = ExecutionMode.LIVE
    supports_scope_filters = True
    debounces_internally = False
    cancels_in_flight = True

    def __init__(
        self,
        endpoint: str,
        *,
        limit: int = DEFAULT_RESULT_LIMIT,
        timeout_seconds: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize live backend.

        Args:
            endpoint: URL of the search endpoint
            limit: Maximum results requested per query
            timeout_seconds: Timeout for HTTP requests in seconds
            http_client: Optional shared client; one is created per query otherwise
        """
        self.endpoint = endpoint
        self.limit = limit
        self.timeout = timeout_seconds
        self._http_client = http_client

    def build_request(self, ctx: QueryContext) -> LiveSearchRequest:
        """Translate a query context into the endpoint's request body."""
        return LiveSearchRequest(
            q=ctx.raw_query,
            limit=self.limit,
            scope=ctx.scope,
            folder_scope=ctx.folder_scope,
            folder=ctx.current_folder if ctx.folder_scope == FolderScope.CURRENT else None,
            filetype="all" if ctx.filetype_filter == FiletypeFilter.ALL else None,
        )

    async def search(self, ctx: QueryContext) -> SearchOutcome:
        """
        Run one query against the live endpoint.

        Raises:
            SearchError: On transport failure, non-2xx status, an ``error``
                field in the response, or an unreadable body
        """
        payload = self.build_request(ctx).model_dump(mode="json", exclude_none=True)

        logger.debug(
            "Sending live search request",
            extra={
                "query_length": len(ctx.raw_query),
                "scope": ctx.scope.value,
                "folder_scope": ctx.folder_scope.value,
            },
        )

        try:
            if self._http_client is not None:
                response = await self._http_client.post(
                    self.endpoint, json=payload, timeout=self.timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.endpoint, json=payload)
        except httpx.HTTPError as exc:
            msg = f"Search request failed: {exc}"
            raise SearchError(
                msg,
                context={"reason": "transport", "error_type": type(exc).__name__},
            ) from exc

        body = self._decode(response)

        if not response.is_success or body.error:
            msg = body.error or f"Search failed: {response.status_code}"
            raise SearchError(
                msg,
                context={"reason": "http_status", "status_code": response.status_code},
            )

        results = [result.model_copy(update={"snippet_html": None}) for result in body.results]

        logger.info(
            "Live search completed",
            extra={
                "query_length": len(ctx.raw_query),
                "result_count": len(results),
                "total_matches": body.total_matches,
                "duration_ms": body.duration_ms,
            },
        )

        return SearchOutcome(
            query=ctx.raw_query,
            results=results,
            total_matches=body.total_matches,
            duration_ms=body.duration_ms,
        )

    def _decode(self, response: httpx.Response) -> LiveSearchResponse:
        try:
            return LiveSearchResponse.model_validate(response.json())
        except (ValueError, PydanticValidationError) as exc:
            if not response.is_success:
                return LiveSearchResponse(error=f"Search failed: {response.status_code}")
            msg = "Invalid search response"
            raise SearchError(
                msg,
                context={"reason": "invalid_response", "status_code": response.status_code},
            ) from exc


async def _resolve(value: Any) -> Any:
    """Await the value when the index module handed back an awaitable."""
    if inspect.isawaitable(value):
        return await value
    return value


def _get(obj: Any, name: str, default: Any = None) -> Any:
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


class StaticBackend:
    """
    Backend for static mode: a precomputed index module imported on first use.

    The module must expose ``init()``, ``options(config)`` and
    ``search(query)``; each may be sync or async. Searches are debounced
    here, once, so the dispatcher dispatches every keystroke straight away.
    Scope, folder and filetype filters are not applied: the static index
    covers the whole corpus.
    """

    mode = ExecutionMode.STATIC
    supports_scope_filters = False
    debounces_internally = True
    cancels_in_flight = False

    def __init__(
        self,
        module_name: str = "pagefind",
        *,
        limit: int = DEFAULT_RESULT_LIMIT,
        ranking: StaticRankingSettings | None = None,
        base_url: str = "/",
        debounce_seconds: float = STATIC_DEBOUNCE_SECONDS,
    ) -> None:
        self.module_name = module_name
        self.limit = limit
        self.ranking = ranking or StaticRankingSettings()
        self.base_url = base_url
        self.debounce_seconds = debounce_seconds
        self._load_task: asyncio.Task[ModuleType] | None = None
        self._latest_call = 0

    @property
    def is_loaded(self) -> bool:
        return (
            self._load_task is not None
            and self._load_task.done()
            and not self._load_task.cancelled()
            and self._load_task.exception() is None
        )

    async def load(self) -> ModuleType:
        """
        Import and initialize the index module, at most once.

        Concurrent callers share one load. A failed load is remembered
        until ``reset()``.

        Raises:
            IndexNotBuiltError: If the module cannot be imported or initialized
        """
        if self._load_task is None:
            self._load_task = asyncio.get_running_loop().create_task(self._load_module())
        return await asyncio.shield(self._load_task)

    def reset(self) -> None:
        """Forget a previous load so the next query retries it."""
        self._load_task = None

    async def _load_module(self) -> ModuleType:
        started = time.monotonic()
        try:
            module = await asyncio.to_thread(importlib.import_module, self.module_name)
            await _resolve(module.options(self.ranking.to_index_options(self.base_url)))
            await _resolve(module.init())
        except Exception as exc:
            logger.warning(
                "Static search index not available",
                extra={
                    "module": self.module_name,
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
            )
            raise IndexNotBuiltError(
                INDEX_NOT_BUILT_MESSAGE,
                context={"module": self.module_name, "error_type": type(exc).__name__},
            ) from exc

        logger.info(
            "Static search index loaded",
            extra={
                "module": self.module_name,
                "duration_ms": int((time.monotonic() - started) * 1000),
            },
        )
        return module

    async def search(self, ctx: QueryContext) -> SearchOutcome | None:
        """
        Run one query against the static index.

        Returns None when a newer call arrived during the debounce window.

        Raises:
            IndexNotBuiltError: If the index module is unavailable
            SearchError: If the index module fails while searching
        """
        self._latest_call += 1
        call = self._latest_call
        if self.debounce_seconds > 0:
            await asyncio.sleep(self.debounce_seconds)
            if call != self._latest_call:
                return None

        started = time.monotonic()
        module = await self.load()

        try:
            response = await _resolve(module.search(ctx.raw_query))
            handles = list(_get(response, "results", None) or [])
            details = await asyncio.gather(
                *(_resolve(_get(handle, "data")()) for handle in handles[: self.limit])
            )
        except Exception as exc:
            msg = f"Static search failed: {exc}"
            raise SearchError(
                msg,
                context={"reason": "static_search", "error_type": type(exc).__name__},
            ) from exc

        total = len(handles)
        results = [
            SearchResult(
                url_path=_get(detail, "url", ""),
                title=_get(_get(detail, "meta", None) or {}, "title", None) or None,
                score=total - index,
                snippet_html=_get(detail, "excerpt", None) or None,
                is_content_match=True,
                filetype="markdown",
            )
            for index, detail in enumerate(details)
        ]
        duration_ms = int((time.monotonic() - started) * 1000)

        logger.info(
            "Static search completed",
            extra={
                "query_length": len(ctx.raw_query),
                "result_count": len(results),
                "total_matches": total,
                "duration_ms": duration_ms,
            },
        )

        return SearchOutcome(
            query=ctx.raw_query,
            results=results,
            total_matches=total,
            duration_ms=duration_ms,
        )


SearchBackend = LiveBackend | StaticBackend


def create_backend(
    settings: Settings,
    http_client: httpx.AsyncClient | None = None,
) -> SearchBackend:
    """Select the backend for the configured execution mode."""
    if settings.execution_mode == ExecutionMode.STATIC:
        return StaticBackend(
            settings.static_index_module,
            limit=settings.search_result_limit,
            ranking=settings.static_ranking,
            base_url=settings.base_url or "/",
            debounce_seconds=settings.debounce_seconds,
        )
    return LiveBackend(
        settings.resolve_url(settings.search_endpoint),
        limit=settings.search_result_limit,
        timeout_seconds=settings.request_timeout_seconds,
        http_client=http_client,
    )
