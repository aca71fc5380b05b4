"""
Debounced, cancellable product search.

``SearchOrchestrator`` turns a stream of query updates into at most
one outstanding search request:

- ``perform_search`` commits the (stripped) query and restarts a
  debounce timer; only the last query of a burst is dispatched.
- Dispatch cancels the previous in-flight request before sending
  the new one.
- Every committed query gets a generation number.  A response is
  applied only if its generation is still current, so a slow
  answer for a superseded query can never overwrite newer results.

Failures are state, not exceptions: the phase becomes ``FAILED``
and ``error_kind`` says why.  Cancellation is not a failure.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from urllib.parse import quote

import httpx

from insightlens.core.config import Settings, get_settings
from insightlens.core.constants import URI_COMPONENT_SAFE_CHARS
from insightlens.core.metrics import (
    record_search_dispatched,
    record_search_outcome,
    record_search_superseded,
)
from insightlens.schemas.enums import SearchErrorKind, SearchPhase
from insightlens.schemas.search import SearchApiResponse, SearchQueryState, SearchResult
from insightlens.services.session import SessionManager

logger = logging.getLogger(__name__)

#: Receives a snapshot of the state after every change.
StateListener = Callable[[SearchQueryState], None]

_STATUS_ERRORS: dict[int, SearchErrorKind] = {
    400: SearchErrorKind.BAD_REQUEST,
    404: SearchErrorKind.NOT_FOUND,
    500: SearchErrorKind.SERVER_ERROR,
}

ERROR_MESSAGES: dict[SearchErrorKind, str] = {
    SearchErrorKind.EMPTY_QUERY: "Please enter a search query.",
    SearchErrorKind.BAD_REQUEST: "Bad Request. Please check your input.",
    SearchErrorKind.NOT_FOUND: "No products found. Please try a different search.",
    SearchErrorKind.SERVER_ERROR: "Internal Server Error. Please try again later.",
    SearchErrorKind.NETWORK_ERROR: "Network error. Please check your connection.",
    SearchErrorKind.UNEXPECTED: "An unexpected error occurred.",
}


def encode_query(query: str) -> str:
    """Percent-encode *query* the way ``encodeURIComponent`` does."""
    return quote(query, safe=URI_COMPONENT_SAFE_CHARS)


class SearchOrchestrator:
    """Owns the search state, the debounce timer and the in-flight request.

    Must be used from inside a running event loop.

    Args:
        session: Session whose credential injection every search
            goes through.
        settings: Client settings; defaults to ``get_settings()``.
        listener: Optional callback receiving a state snapshot
            after every change.
    """

    def __init__(
        self,
        session: SessionManager,
        settings: Settings | None = None,
        *,
        listener: StateListener | None = None,
    ) -> None:
        self._session = session
        self._settings = settings or get_settings()
        self._listener = listener
        self._state = SearchQueryState()
        self._generation = 0
        self._debounce_task: asyncio.Task[None] | None = None
        self._inflight: asyncio.Task[None] | None = None
        self._disposed = False

    # ── Observable state ────────────────────────────────────

    @property
    def state(self) -> SearchQueryState:
        """A deep copy of the current state."""
        return self._state.model_copy(deep=True)

    @property
    def error_message(self) -> str | None:
        """Human-readable text for the current error, if any."""
        kind = self._state.error_kind
        if kind is None:
            return None
        message = ERROR_MESSAGES[kind]
        if kind is SearchErrorKind.UNEXPECTED and self._state.error_status:
            return f"{message}: {self._state.error_status}"
        return message

    def is_expanded(self, result_id: str) -> bool:
        """Whether all reviews of *result_id* are shown."""
        return self._state.expansion.get(result_id, False)

    def visible_reviews(self, result: SearchResult) -> list[str]:
        """Reviews to render for *result*: all if expanded, else a preview."""
        if self.is_expanded(result.id):
            return list(result.reviews)
        return result.reviews[: self._settings.REVIEW_PREVIEW_COUNT]

    # ── Local operations ────────────────────────────────────

    def set_query(self, text: str) -> None:
        """Record what the user typed.  Sends nothing."""
        self._state.raw_query = text
        self._notify()

    def toggle_review_expansion(self, result_id: str) -> None:
        """Flip the review expansion of *result_id*."""
        if self.is_expanded(result_id):
            del self._state.expansion[result_id]
        else:
            self._state.expansion[result_id] = True
        self._notify()

    def clear_results(self) -> None:
        """Return to ``IDLE`` with no results and no error.

        An in-flight request is left running; call ``cancel`` as
        well to drop it.
        """
        self._state.committed_query = ""
        self._state.results = []
        self._state.phase = SearchPhase.IDLE
        self._state.error_kind = None
        self._state.error_status = None
        self._state.expansion = {}
        self._notify()

    # ── Search ──────────────────────────────────────────────

    def perform_search(self, text: str) -> None:
        """Commit *text* and (re)start the debounce timer.

        The phase turns ``PENDING`` right away so callers can show
        progress during the quiet period.  A blank query fails
        immediately with ``EMPTY_QUERY`` and sends nothing.
        """
        if self._disposed:
            logger.warning("perform_search called on a disposed orchestrator")
            return

        query = text.strip()
        if not query:
            self._state.phase = SearchPhase.FAILED
            self._state.error_kind = SearchErrorKind.EMPTY_QUERY
            self._state.error_status = None
            self._notify()
            return

        self._generation += 1
        self._state.committed_query = query
        self._state.phase = SearchPhase.PENDING
        self._state.error_kind = None
        self._state.error_status = None
        if self._debounce_task is not None:
            self._debounce_task.cancel()
        self._debounce_task = asyncio.create_task(
            self._debounced_dispatch(query, self._generation),
        )
        self._notify()

    def cancel(self) -> None:
        """Drop the pending debounce timer and the in-flight request.

        Results are kept; a pending search falls back to ``IDLE``.
        """
        self._generation += 1
        self._cancel_tasks()
        if self._state.phase is SearchPhase.PENDING:
            self._state.phase = SearchPhase.IDLE
            self._notify()

    async def wait_settled(self) -> None:
        """Wait until no debounce timer or request is outstanding."""
        while True:
            pending = [
                task
                for task in (self._debounce_task, self._inflight)
                if task is not None and not task.done()
            ]
            if not pending:
                return
            await asyncio.wait(pending)

    def dispose(self) -> None:
        """Cancel everything; nothing fires after this returns."""
        self._disposed = True
        self._generation += 1
        self._cancel_tasks()
        logger.debug("Search orchestrator disposed")

    async def aclose(self) -> None:
        """Dispose and wait for the cancelled tasks to unwind."""
        tasks = [t for t in (self._debounce_task, self._inflight) if t is not None]
        self.dispose()
        if tasks:
            await asyncio.wait(tasks)

    # ── Internals ───────────────────────────────────────────

    def _cancel_tasks(self) -> None:
        if self._debounce_task is not None:
            self._debounce_task.cancel()
            self._debounce_task = None
        if self._inflight is not None:
            self._inflight.cancel()
            self._inflight = None

    async def _debounced_dispatch(self, query: str, generation: int) -> None:
        await asyncio.sleep(self._settings.search_debounce_seconds)
        if self._debounce_task is asyncio.current_task():
            self._debounce_task = None
        if generation != self._generation or self._disposed:
            return

        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()
            logger.debug("Cancelled in-flight search; superseded by %r", query)

        self._state.phase = SearchPhase.PENDING
        self._state.error_kind = None
        self._state.error_status = None
        self._notify()
        record_search_dispatched()
        self._inflight = asyncio.create_task(self._execute(query, generation))

    async def _execute(self, query: str, generation: int) -> None:
        try:
            response = await self._session.request(
                "POST",
                self._settings.SEARCH_URL,
                json={"input": encode_query(query)},
            )
        except asyncio.CancelledError:
            logger.debug("Search for %r cancelled", query)
            return
        except httpx.RequestError as exc:
            logger.warning("Search for %r got no response: %s", query, exc)
            self._apply_failure(generation, SearchErrorKind.NETWORK_ERROR)
            return
        except Exception:
            logger.exception("Search for %r failed unexpectedly", query)
            self._apply_failure(generation, SearchErrorKind.UNEXPECTED)
            return
        finally:
            if self._inflight is asyncio.current_task():
                self._inflight = None

        if not response.is_success:
            kind = _STATUS_ERRORS.get(response.status_code, SearchErrorKind.UNEXPECTED)
            logger.warning(
                "Search for %r failed with status %s",
                query,
                response.status_code,
            )
            self._apply_failure(generation, kind, status=response.status_code)
            return

        try:
            payload = SearchApiResponse.model_validate(response.json())
        except ValueError:
            logger.error("Search for %r returned a malformed body", query)
            self._apply_failure(
                generation,
                SearchErrorKind.UNEXPECTED,
                status=response.status_code,
            )
            return

        if not payload.products:
            logger.info("No products for %r (%s)", query, payload.message or "empty")
            self._apply_failure(generation, SearchErrorKind.NOT_FOUND)
            return

        self._apply_results(
            generation,
            [SearchResult.from_product(p) for p in payload.products],
        )

    def _is_current(self, generation: int) -> bool:
        if generation == self._generation and not self._disposed:
            return True
        logger.debug("Discarding response of superseded search #%d", generation)
        record_search_superseded()
        return False

    def _apply_results(self, generation: int, results: list[SearchResult]) -> None:
        if not self._is_current(generation):
            return
        self._state.results = results
        self._state.phase = SearchPhase.SUCCEEDED
        self._state.error_kind = None
        self._state.error_status = None
        record_search_outcome("success")
        logger.info("Search returned %d products", len(results))
        self._notify()

    def _apply_failure(
        self,
        generation: int,
        kind: SearchErrorKind,
        *,
        status: int | None = None,
    ) -> None:
        if not self._is_current(generation):
            return
        self._state.results = []
        self._state.phase = SearchPhase.FAILED
        self._state.error_kind = kind
        self._state.error_status = (
            status if kind is SearchErrorKind.UNEXPECTED else None
        )
        record_search_outcome(kind.value)
        self._notify()

    def _notify(self) -> None:
        if self._listener is None:
            return
        try:
            self._listener(self.state)
        except Exception:
            logger.exception("Search state listener failed")
