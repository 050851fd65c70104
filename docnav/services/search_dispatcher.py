"""
Search dispatcher: one current-query slot per search surface.

Keystrokes update the visible query text immediately and schedule a search
after a quiet period. Every new query bumps a monotonic generation; results
are committed only when they belong to the latest generation, so a slow
answer for an older query never overwrites a newer one.

States: idle -> debouncing -> in_flight -> settled | cancelled | failed.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import replace
from typing import TYPE_CHECKING

from docnav.exceptions import IndexNotBuiltError, SearchError
from docnav.models.search import (
    DispatcherSnapshot,
    FiletypeFilter,
    FolderScope,
    QueryContext,
    SearchOutcome,
    SearchScope,
    SearchState,
    folder_for_page,
)
from docnav.utils.error_handling import format_exception_for_display
from docnav.utils.query_context import clear_query_id, format_query_id, set_query_id

if TYPE_CHECKING:
    from docnav.config import Settings
    from docnav.services.search_backends import SearchBackend

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.15
DEFAULT_MIN_QUERY_LENGTH = 2

ChangeCallback = Callable[[DispatcherSnapshot], None]


class SearchDispatcher:
    """Runs queries against one backend and owns the visible search state."""

    def __init__(
        self,
        backend: SearchBackend,
        *,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        min_query_length: int = DEFAULT_MIN_QUERY_LENGTH,
        on_change: ChangeCallback | None = None,
        context: QueryContext | None = None,
    ) -> None:
        """
        Initialize search dispatcher.

        Args:
            backend: Backend for the session's execution mode
            debounce_seconds: Quiet period after the last keystroke before dispatch
            min_query_length: Shorter queries clear results instead of searching
            on_change: Called with the new snapshot after every state change
            context: Initial scope/filter settings
        """
        self._backend = backend
        self.debounce_seconds = debounce_seconds
        self.min_query_length = min_query_length
        self._on_change = on_change
        self._context = (context or QueryContext(raw_query="")).model_copy(
            update={"execution_mode": backend.mode}
        )
        self._snapshot = DispatcherSnapshot(query=self._context.raw_query)
        self._generation = 0
        self._current: asyncio.Task[SearchOutcome | None] | None = None
        self._pending: set[asyncio.Task[SearchOutcome | None]] = set()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        backend: SearchBackend,
        on_change: ChangeCallback | None = None,
    ) -> SearchDispatcher:
        return cls(
            backend,
            debounce_seconds=settings.debounce_seconds,
            min_query_length=settings.min_query_length,
            on_change=on_change,
        )

    @property
    def snapshot(self) -> DispatcherSnapshot:
        return self._snapshot

    @property
    def context(self) -> QueryContext:
        return self._context

    @property
    def backend(self) -> SearchBackend:
        return self._backend

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def supports_scope_filters(self) -> bool:
        """Whether scope controls should be shown for the current backend."""
        return self._backend.supports_scope_filters

    # ------------------------------------------------------------------
    # Input events
    # ------------------------------------------------------------------

    def update_query(self, text: str) -> None:
        """
        Handle a keystroke.

        The query text is visible at once. Queries shorter than the minimum
        clear the results without dispatching; longer ones are dispatched
        after the debounce period, unless the backend debounces itself.
        """
        self._context = self._context.model_copy(update={"raw_query": text})
        self._supersede()

        if not self._is_searchable(text):
            self._commit(DispatcherSnapshot(query=text))
            return

        self._commit(replace(self._snapshot, query=text, state=SearchState.DEBOUNCING))
        if self._backend.debounces_internally:
            # The backend sleeps out the quiet period itself
            self._schedule(self._context, delay=0)
        else:
            self._schedule(self._context, delay=self.debounce_seconds)

    def set_scope(self, scope: SearchScope) -> None:
        self._update_filters(scope=scope)

    def set_folder_scope(self, folder_scope: FolderScope) -> None:
        self._update_filters(folder_scope=folder_scope)

    def set_filetype_filter(self, filetype_filter: FiletypeFilter) -> None:
        self._update_filters(filetype_filter=filetype_filter)

    def set_current_page(self, page_path: str) -> None:
        """Record the page the search surface is shown on (for folder scope)."""
        self._context = self._context.model_copy(
            update={"current_folder": folder_for_page(page_path)}
        )

    async def search(self, ctx: QueryContext | None = None) -> SearchOutcome | None:
        """
        Dispatch a query immediately, superseding any outstanding one.

        Returns:
            The outcome, or None when the query was too short, superseded
            or cancelled before it settled

        Raises:
            SearchError: If the backend failed for this query
        """
        if ctx is not None:
            self._context = ctx.model_copy(update={"execution_mode": self._backend.mode})
        ctx = self._context
        self._supersede()

        if not self._is_searchable(ctx.raw_query):
            self._commit(DispatcherSnapshot(query=ctx.raw_query))
            return None

        self._commit(replace(self._snapshot, query=ctx.raw_query, state=SearchState.IN_FLIGHT))
        task = self._schedule(ctx, delay=0)
        await asyncio.wait({task})
        if task.cancelled():
            return None
        return task.result()

    def switch_backend(self, backend: SearchBackend) -> None:
        """
        Change execution mode.

        Outstanding work for the previous backend is cancelled and its late
        results are never applied.
        """
        had_outstanding = self._snapshot.is_loading
        self._supersede(force_cancel=True)
        previous_mode = self._backend.mode
        self._backend = backend
        self._context = self._context.model_copy(update={"execution_mode": backend.mode})

        logger.info(
            "Search backend switched",
            extra={"from_mode": previous_mode.value, "to_mode": backend.mode.value},
        )

        if had_outstanding:
            self._commit(
                DispatcherSnapshot(query=self._context.raw_query, state=SearchState.CANCELLED)
            )

    def close(self) -> None:
        """Close the search surface: cancel outstanding work and clear everything."""
        self._supersede(force_cancel=True)
        self._context = self._context.model_copy(update={"raw_query": ""})
        self._commit(DispatcherSnapshot())

    async def wait_idle(self) -> None:
        """Wait until no scheduled or in-flight query remains."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _is_searchable(self, text: str) -> bool:
        return len(text) >= self.min_query_length

    def _update_filters(self, **changes: object) -> None:
        self._context = self._context.model_copy(update=changes)

        if not self._backend.supports_scope_filters:
            logger.debug(
                "Scope filters ignored by backend",
                extra={"mode": self._backend.mode.value, "filters": sorted(changes)},
            )
            return

        if self._is_searchable(self._context.raw_query):
            self._supersede()
            self._commit(replace(self._snapshot, state=SearchState.IN_FLIGHT))
            self._schedule(self._context, delay=0)

    def _supersede(self, force_cancel: bool = False) -> None:
        """Start a new generation; outstanding work can no longer commit."""
        self._generation += 1
        current = self._current
        self._current = None
        if current is None or current.done():
            return
        if force_cancel or self._backend.cancels_in_flight:
            current.cancel()

    def _schedule(self, ctx: QueryContext, delay: float) -> asyncio.Task[SearchOutcome | None]:
        generation = self._generation
        task = asyncio.get_running_loop().create_task(self._execute(ctx, generation, delay))
        self._current = task
        self._pending.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task[SearchOutcome | None]) -> None:
        self._pending.discard(task)
        if self._current is task:
            self._current = None
        if not task.cancelled():
            # Failures are already committed to the snapshot
            task.exception()

    async def _execute(
        self,
        ctx: QueryContext,
        generation: int,
        delay: float,
    ) -> SearchOutcome | None:
        token = set_query_id(format_query_id(id(self), generation))
        try:
            if delay > 0:
                await asyncio.sleep(delay)
                if generation != self._generation:
                    return None
                self._commit(replace(self._snapshot, state=SearchState.IN_FLIGHT))

            try:
                outcome = await self._backend.search(ctx)
            except SearchError as exc:
                if not self._fail(exc, generation):
                    return None
                raise
            except Exception as exc:
                logger.exception(
                    "Unexpected error during search",
                    extra={"error_type": type(exc).__name__},
                )
                error = SearchError(
                    "Search failed",
                    context={"reason": "unexpected", "error_type": type(exc).__name__},
                )
                if not self._fail(error, generation):
                    return None
                raise error from exc

            if outcome is None or generation != self._generation:
                logger.debug(
                    "Discarding superseded search result",
                    extra={"generation": generation, "current_generation": self._generation},
                )
                return None

            self._commit(
                DispatcherSnapshot(
                    query=self._snapshot.query,
                    state=SearchState.SETTLED,
                    results=tuple(outcome.results),
                    total_matches=outcome.total_matches,
                    duration_ms=outcome.duration_ms,
                )
            )
            return outcome
        finally:
            clear_query_id(token)

    def _fail(self, exc: SearchError, generation: int) -> bool:
        """Commit a failure for the current generation; False when superseded."""
        if generation != self._generation:
            logger.debug("Discarding superseded search failure", extra={"generation": generation})
            return False

        logger.warning(
            "Search failed",
            extra={"error": str(exc), **exc.context},
        )
        self._commit(
            DispatcherSnapshot(
                query=self._snapshot.query,
                state=SearchState.FAILED,
                error=str(exc),
                error_detail=format_exception_for_display(exc),
                index_not_built=isinstance(exc, IndexNotBuiltError),
            )
        )
        return True

    def _commit(self, snapshot: DispatcherSnapshot) -> None:
        self._snapshot = snapshot
        if self._on_change is None:
            return
        try:
            self._on_change(snapshot)
        except Exception:
            logger.exception("Search change callback failed")
