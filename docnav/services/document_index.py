"""
Document index source for one browsing session.

Loads the site index resource once, derives the navigation tree and reading
order from it, and notifies subscribers. Refreshes replace the whole record
set and rebuild every derived value; nothing is patched in place.
"""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from docnav.exceptions import DocumentIndexError, ValidationError
from docnav.models.document import SiteIndex, SortField
from docnav.services.sequence import NavigationIndex, build_navigation

if TYPE_CHECKING:
    from docnav.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SiteIndexState:
    """Snapshot delivered to subscribers."""

    is_loading: bool = True
    data: SiteIndex | None = None
    error: str | None = None
    navigation: NavigationIndex | None = None

    @property
    def is_available(self) -> bool:
        return self.navigation is not None


Subscriber = Callable[[SiteIndexState], None]


class DocumentIndexSource:
    """Observer over the document index of one session."""

    def __init__(
        self,
        url: str | None = None,
        path: str | Path | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 10.0,
        default_sort: Sequence[SortField] | None = None,
        default_index_file: str | None = None,
    ) -> None:
        """
        Initialize the index source.

        Args:
            url: URL of the site index JSON resource
            path: Local file holding the site index JSON (takes precedence over url)
            http_client: Optional shared client; one is created per load otherwise
            timeout_seconds: Timeout for fetching the resource
            default_sort: Sort config used when the resource leaves it out
            default_index_file: Index filename used when the resource leaves it out
        """
        if url is None and path is None:
            msg = "Document index source needs a url or a path"
            raise ValidationError(msg, context={"url": url, "path": path})

        self.url = url
        self.path = Path(path) if path is not None else None
        self.timeout = timeout_seconds
        self._http_client = http_client
        self.default_sort = list(default_sort) if default_sort is not None else None
        self.default_index_file = default_index_file or None
        self._state = SiteIndexState()
        self._subscribers: dict[int, Subscriber] = {}
        self._tokens = itertools.count()
        self._failure: DocumentIndexError | None = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        http_client: httpx.AsyncClient | None = None,
    ) -> DocumentIndexSource:
        """Create a source for the configured index resource."""
        return cls(
            url=settings.resolve_url(settings.site_index_url),
            path=settings.site_index_path,
            http_client=http_client,
            timeout_seconds=settings.request_timeout_seconds,
            default_sort=settings.sort,
            default_index_file=settings.index_file,
        )

    @property
    def state(self) -> SiteIndexState:
        return self._state

    @property
    def source(self) -> str:
        return str(self.path) if self.path is not None else str(self.url)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a callback for state changes.

        The callback receives the current state immediately, then every
        later change. Returns a disposer that unregisters it.
        """
        token = next(self._tokens)
        self._subscribers[token] = callback
        self._deliver(callback, self._state)

        def dispose() -> None:
            self._subscribers.pop(token, None)

        return dispose

    async def load(self, reset: bool = False) -> SiteIndex:
        """
        Load the index resource and publish the derived navigation.

        A failed load is terminal for this source: later calls re-raise the
        recorded failure unless ``reset`` is set.

        Raises:
            DocumentIndexError: If the resource is unreachable or malformed
        """
        if self._failure is not None and not reset:
            raise self._failure

        self._failure = None
        if not self._state.is_loading:
            self._publish(
                SiteIndexState(
                    is_loading=True,
                    data=self._state.data,
                    navigation=self._state.navigation,
                )
            )

        try:
            payload = await self._fetch()
            site_index = self._parse(payload)
        except DocumentIndexError as exc:
            self._failure = exc
            logger.warning(
                "Document index unavailable",
                extra={"source": self.source, **exc.context},
            )
            self._publish(SiteIndexState(is_loading=False, error=str(exc)))
            raise

        self.replace(site_index)
        return site_index

    def replace(self, site_index: SiteIndex) -> None:
        """Swap in a new index snapshot and rebuild every derived value."""
        navigation = build_navigation(
            site_index.markdown_files,
            site_index.sort,
            index_file=site_index.index_file,
        )
        logger.info(
            "Document index loaded",
            extra={
                "source": self.source,
                "document_count": len(site_index.markdown_files),
                "index_file": site_index.index_file,
            },
        )
        self._publish(
            SiteIndexState(is_loading=False, data=site_index, error=None, navigation=navigation)
        )

    async def _fetch(self) -> Any:
        if self.path is not None:
            try:
                raw = await asyncio.to_thread(self.path.read_text, encoding="utf-8")
            except OSError as exc:
                msg = f"Failed to read site index: {exc}"
                raise DocumentIndexError(msg, context={"reason": "unreadable"}) from exc
            return self._decode(raw)

        try:
            if self._http_client is not None:
                response = await self._http_client.get(self.url, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(self.url)
        except httpx.HTTPError as exc:
            msg = f"Failed to load site data: {exc}"
            raise DocumentIndexError(
                msg,
                context={"reason": "transport", "error_type": type(exc).__name__},
            ) from exc

        if not response.is_success:
            msg = f"Failed to load site data: {response.status_code}"
            raise DocumentIndexError(
                msg,
                context={"reason": "http_status", "status_code": response.status_code},
            )

        return self._decode(response.text)

    def _decode(self, raw: str) -> Any:
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            msg = "Site index is not valid JSON"
            raise DocumentIndexError(msg, context={"reason": "invalid_json"}) from exc

    def _parse(self, payload: Any) -> SiteIndex:
        if not isinstance(payload, dict):
            msg = "Site index must be a JSON object"
            raise DocumentIndexError(
                msg,
                context={"reason": "not_an_object", "type": type(payload).__name__},
            )
        try:
            site_index = SiteIndex.model_validate(payload)
        except PydanticValidationError as exc:
            msg = "Site index failed validation"
            raise DocumentIndexError(
                msg,
                context={"reason": "invalid_schema", "error_count": exc.error_count()},
            ) from exc
        return self._apply_defaults(site_index, payload)

    def _apply_defaults(self, site_index: SiteIndex, payload: dict[str, Any]) -> SiteIndex:
        """Fill settings the resource leaves out from the configured defaults."""
        updates: dict[str, Any] = {}
        if self.default_sort and not payload.get("sort"):
            updates["sort"] = list(self.default_sort)
        if self.default_index_file and not payload.get("index_file"):
            updates["index_file"] = self.default_index_file
        if not updates:
            return site_index

        logger.debug(
            "Using configured defaults for site index",
            extra={"source": self.source, "fields": sorted(updates)},
        )
        return site_index.model_copy(update=updates)

    def _publish(self, state: SiteIndexState) -> None:
        self._state = state
        for callback in list(self._subscribers.values()):
            self._deliver(callback, state)

    def _deliver(self, callback: Subscriber, state: SiteIndexState) -> None:
        try:
            callback(state)
        except Exception:
            logger.exception(
                "Document index subscriber failed",
                extra={"source": self.source},
            )
