"""
Search session paging.

A ``SearchSession`` walks Idle -> Loading -> Loaded -> LoadingMore -> Loaded
... -> Exhausted. Each page request carries the session generation at the
time it was issued; changing filters or search text bumps the generation,
so a page that resolves afterwards is discarded instead of appended.

The state machine itself does no I/O. ``load``/``load_more``/``retry_load``
drive it with any fetch callable, sync or async.
"""
from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Union

from ..filters.models import FilterOptions, ProviderQuery, Restaurant, create_default_filters
from ..filters.query import apply_post_filters, translate
from ..places.client import PlacesError
from ..places.models import SearchPage

logger = logging.getLogger(__name__)

Fetch = Callable[[ProviderQuery], Union[SearchPage, Awaitable[SearchPage]]]


class SessionState(str, Enum):
    idle = "idle"
    loading = "loading"
    loaded = "loaded"
    loading_more = "loading_more"
    exhausted = "exhausted"
    error = "error"


class LoadOutcome(str, Enum):
    applied = "applied"
    no_more_data = "no_more_data"
    discarded = "discarded"
    failed = "failed"


@dataclass(frozen=True)
class PageRequest:
    query: ProviderQuery
    generation: int
    is_first_page: bool


class SearchSession:
    def __init__(self, filters: FilterOptions | None = None, search_text: str = "") -> None:
        self.filters = (filters or create_default_filters()).clone()
        self.search_text = search_text
        self.generation = 0
        self.state = SessionState.idle
        self.raw_results: list[Restaurant] = []
        self.results: list[Restaurant] = []
        self.next_page_token: str | None = None
        self.error: Exception | None = None
        self._failed: PageRequest | None = None

    @property
    def dropped_count(self) -> int:
        return len(self.raw_results) - len(self.results)

    @property
    def busy(self) -> bool:
        return self.state in (SessionState.loading, SessionState.loading_more)

    @property
    def has_more(self) -> bool:
        return self.state == SessionState.loaded and bool(self.next_page_token)

    # ---------------------------------------------------------------------------
    # Inputs
    # ---------------------------------------------------------------------------

    def reset(self) -> None:
        """Back to Idle; anything in flight becomes stale."""
        self.generation += 1
        self.state = SessionState.idle
        self.raw_results = []
        self.results = []
        self.next_page_token = None
        self.error = None
        self._failed = None

    def set_filters(self, filters: FilterOptions) -> None:
        self.filters = filters.clone()
        self.reset()

    def set_search_text(self, search_text: str) -> None:
        self.search_text = search_text
        self.reset()

    # ---------------------------------------------------------------------------
    # Transitions
    # ---------------------------------------------------------------------------

    def start(self) -> PageRequest:
        """Begin a fresh first-page load, superseding any previous one."""
        self.reset()
        self.state = SessionState.loading
        return PageRequest(
            query=translate(self.filters, self.search_text),
            generation=self.generation,
            is_first_page=True,
        )

    def start_load_more(self) -> PageRequest | None:
        """Next-page request, or None when busy, exhausted or without a token."""
        if not self.has_more:
            return None
        self.state = SessionState.loading_more
        return PageRequest(
            query=translate(self.filters, self.search_text, self.next_page_token),
            generation=self.generation,
            is_first_page=False,
        )

    def retry(self) -> PageRequest | None:
        """Re-issue the request that failed; None outside the Error state."""
        if self.state != SessionState.error or self._failed is None:
            return None
        request = self._failed
        self._failed = None
        self.error = None
        self.state = SessionState.loading if request.is_first_page else SessionState.loading_more
        return request

    def is_current(self, request: PageRequest) -> bool:
        return request.generation == self.generation and self.busy

    def complete(self, request: PageRequest, page: SearchPage) -> LoadOutcome:
        if not self.is_current(request):
            logger.debug("Discarding stale page (generation %d, now %d)", request.generation, self.generation)
            return LoadOutcome.discarded

        seen = {r.id for r in self.raw_results}
        for restaurant in page.results:
            if restaurant.id not in seen:
                seen.add(restaurant.id)
                self.raw_results.append(restaurant)
        self.results = apply_post_filters(self.raw_results, self.filters)

        self.next_page_token = page.next_page_token or None
        self.state = SessionState.loaded if self.next_page_token else SessionState.exhausted
        return LoadOutcome.applied

    def fail(self, request: PageRequest, error: Exception) -> LoadOutcome:
        if not self.is_current(request):
            return LoadOutcome.discarded
        logger.warning("Page load failed: %s", error)
        self.state = SessionState.error
        self.error = error
        self._failed = request
        return LoadOutcome.failed

    # ---------------------------------------------------------------------------
    # Drivers
    # ---------------------------------------------------------------------------

    async def _run(self, request: PageRequest, fetch: Fetch) -> LoadOutcome:
        try:
            page = fetch(request.query)
            if inspect.isawaitable(page):
                page = await page
        except PlacesError as exc:
            return self.fail(request, exc)
        except Exception as exc:
            logger.error("Unexpected error while fetching a page", exc_info=True)
            return self.fail(request, exc)
        return self.complete(request, page)

    async def load(self, fetch: Fetch) -> LoadOutcome:
        return await self._run(self.start(), fetch)

    async def load_more(self, fetch: Fetch) -> LoadOutcome:
        request = self.start_load_more()
        if request is None:
            return LoadOutcome.no_more_data
        return await self._run(request, fetch)

    async def retry_load(self, fetch: Fetch) -> LoadOutcome:
        request = self.retry()
        if request is None:
            return LoadOutcome.no_more_data
        return await self._run(request, fetch)
