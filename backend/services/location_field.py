"""
Location input state machine.

One ``LocationField`` backs one autocomplete input of the dispatch form:
debounced Nominatim search as the user types, a dropdown of up to five
suggestions, keyboard navigation, and a resolved (name, lat, lon) once the
user picks a suggestion.

Phases:
    Idle -> Searching -> Results | ErrorShown -> Searching ... -> Resolved

A resolved location always matches the text shown; any edit drops it before
the next search fires. All methods must be called from the event loop that
owns the field.
"""
from __future__ import annotations

import logging
from typing import Awaitable, Callable, List, Optional, Tuple

from domain.models import (
    NOT_FOUND_MESSAGE,
    SEARCH_FAILED_MESSAGE,
    ErrorShown,
    FieldPhase,
    FieldStatus,
    Idle,
    ResolvedLocation,
    Resolved,
    Results,
    Searching,
    Suggestion,
)
from services.cancellation import CancelToken, TokenSource, issue
from services.debounce import DebouncedQueryScheduler
from services.geocoding import search_locations
from services.keyboard import Key, KeyboardNavigator
from settings import settings

logger = logging.getLogger(__name__)

SearchFn = Callable[[str, int, CancelToken], Awaitable[List[Suggestion]]]
ChangeCallback = Callable[[Optional[ResolvedLocation]], None]


class LocationField:
    def __init__(
        self,
        label: str = "Location",
        *,
        search: SearchFn = search_locations,
        on_change: Optional[ChangeCallback] = None,
        debounce_sec: Optional[float] = None,
        limit: Optional[int] = None,
        timeout_sec: Optional[float] = None,
    ):
        self.label = label
        self.query_text = ""
        self.phase: FieldPhase = Idle()
        self.active_index = -1
        self.is_open = False
        self.is_loading = False
        self.is_focused = False
        # Shown instead of the internal error (e.g. "No route found");
        # never drives transitions.
        self.external_error: Optional[str] = None

        self._search = search
        self._on_change = on_change
        self._limit = settings.SEARCH_RESULT_LIMIT if limit is None else limit
        self._timeout = settings.PROVIDER_TIMEOUT_SEC if timeout_sec is None else timeout_sec
        self._tokens = TokenSource("search")
        self._scheduler = DebouncedQueryScheduler(
            self._run_search,
            delay=settings.SEARCH_DEBOUNCE_SEC if debounce_sec is None else debounce_sec,
            on_empty=self._clear_results,
        )
        self.keyboard = KeyboardNavigator(self)

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def status(self) -> FieldStatus:
        return self.phase.status

    @property
    def suggestions(self) -> Tuple[Suggestion, ...]:
        if isinstance(self.phase, (Results, Searching)):
            return self.phase.suggestions
        return ()

    @property
    def error(self) -> Optional[str]:
        if isinstance(self.phase, ErrorShown):
            return self.phase.message
        return None

    @property
    def value(self) -> Optional[ResolvedLocation]:
        if isinstance(self.phase, Resolved):
            return self.phase.location
        return None

    @property
    def display_error(self) -> Optional[str]:
        return self.external_error or self.error

    @property
    def is_valid(self) -> bool:
        return self.value is not None and not self.display_error

    # ------------------------------------------------------------------
    # User input
    # ------------------------------------------------------------------

    def on_input(self, text: str) -> None:
        """Text changed in the input."""
        self.query_text = text
        self.active_index = -1
        if isinstance(self.phase, Resolved):
            self.phase = Idle()
            self._emit(None)
        if text.strip():
            self.phase = Searching(self.suggestions)
        self._scheduler.on_input(text)

    def select(self, index: int) -> Optional[ResolvedLocation]:
        """Pick the suggestion at ``index``; out-of-range indices are ignored."""
        suggestions = self.suggestions
        if not 0 <= index < len(suggestions):
            return None
        return self.pick(suggestions[index])

    def pick(self, suggestion: Suggestion) -> ResolvedLocation:
        """The only way into Resolved from user input."""
        location = ResolvedLocation.from_suggestion(suggestion)
        self._abort_search()
        self.phase = Resolved(location)
        self.query_text = location.name
        self.active_index = -1
        self.is_open = False
        self.is_focused = False
        logger.debug("%s resolved to %s (%.4f, %.4f)", self.label, location.name, location.lat, location.lon)
        self._emit(location)
        return location

    def clear(self) -> None:
        """Clear button."""
        self._reset()
        self._emit(None)

    def set_value(self, location: Optional[ResolvedLocation]) -> None:
        """Pre-populate (or reset) the field from the parent form."""
        previous = self.value
        if location is None:
            self._reset()
        else:
            self._abort_search()
            self.phase = Resolved(location)
            self.query_text = location.name
            self.active_index = -1
            self.is_open = False
        if location != previous:
            self._emit(location)

    def focus(self) -> None:
        self.is_focused = True
        if self.suggestions:
            self.is_open = True

    def blur(self) -> None:
        self.is_focused = False

    def close_dropdown(self) -> None:
        """Outside click or Escape; text, suggestions and selection stay."""
        self.is_open = False

    def handle_key(self, key: Key | str) -> bool:
        return self.keyboard.handle_key(key)

    # ------------------------------------------------------------------
    # Search lifecycle
    # ------------------------------------------------------------------

    async def _run_search(self, text: str) -> None:
        token = self._tokens.issue()
        self.is_loading = True
        if isinstance(self.phase, ErrorShown):
            self.phase = Searching()

        outcome = await issue(
            lambda t: self._search(text, self._limit, t), token, timeout=self._timeout
        )
        if outcome.cancelled:
            return

        self.is_loading = False
        self.active_index = -1
        if outcome.ok:
            suggestions = tuple(outcome.value or ())[: self._limit]
            if suggestions:
                self.phase = Results(suggestions)
            else:
                self.phase = ErrorShown(NOT_FOUND_MESSAGE)
        else:
            message = outcome.error.message if outcome.error else None
            self.phase = ErrorShown(message or SEARCH_FAILED_MESSAGE)
        self.is_open = True

    def _clear_results(self) -> None:
        self._abort_search()
        self.phase = Idle()
        self.is_open = False

    def _abort_search(self) -> None:
        # Cancelled requests never touch state, so whoever cancels them
        # owns the loading flag.
        self._scheduler.cancel_pending()
        self._tokens.cancel()
        self.is_loading = False

    def _reset(self) -> None:
        self._abort_search()
        self.query_text = ""
        self.phase = Idle()
        self.active_index = -1
        self.is_open = False

    def _emit(self, location: Optional[ResolvedLocation]) -> None:
        if self._on_change is not None:
            self._on_change(location)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    async def settle(self) -> None:
        """Wait for pending debounce timers and in-flight searches."""
        await self._scheduler.settle()

    def close(self) -> None:
        self._tokens.cancel()
        self._scheduler.close()
