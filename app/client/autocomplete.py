"""View-state for one address field with Places suggestions.

The model is driven by UI events (``on_input``, ``on_blur``, key handlers) and
runs provider calls off the event loop, so typing never waits on the network.
Only the fetch started by the latest keystroke may update ``suggestions``.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from app.services.geocoding import (
    AUTOCOMPLETE_MIN_LENGTH,
    GeocodingError,
    GeocodingProvider,
    PlaceDetails,
    PlaceSuggestion,
)

_LOG = logging.getLogger("app.client.autocomplete")

DEBOUNCE_SECONDS = 0.3
BLUR_GRACE_SECONDS = 0.2


class AddressAutocomplete:
    def __init__(
        self,
        provider: GeocodingProvider,
        *,
        debounce_seconds: float = DEBOUNCE_SECONDS,
        blur_grace_seconds: float = BLUR_GRACE_SECONDS,
        min_length: int = AUTOCOMPLETE_MIN_LENGTH,
        session_token: Optional[str] = None,
    ):
        self._provider = provider
        self._debounce = debounce_seconds
        self._blur_grace = blur_grace_seconds
        self._min_length = min_length
        self._session_token = session_token

        self.text = ""
        self.suggestions: list[PlaceSuggestion] = []
        self.highlighted = -1
        self.is_open = False
        self.selected: Optional[PlaceDetails] = None
        self.selected_place_id: Optional[str] = None

        self._seq = 0
        self._fetch_task: Optional[asyncio.Task] = None
        self._blur_task: Optional[asyncio.Task] = None

    @property
    def lat(self) -> Optional[float]:
        return self.selected.lat if self.selected else None

    @property
    def lng(self) -> Optional[float]:
        return self.selected.lng if self.selected else None

    def _cancel_fetch(self) -> None:
        if self._fetch_task is not None and not self._fetch_task.done():
            self._fetch_task.cancel()
        self._fetch_task = None

    def _cancel_blur(self) -> None:
        if self._blur_task is not None and not self._blur_task.done():
            self._blur_task.cancel()
        self._blur_task = None

    def _dismiss(self) -> None:
        self.is_open = False
        self.highlighted = -1

    def on_input(self, text: str) -> None:
        self.text = text
        # typed text no longer describes the chosen place
        self.selected = None
        self.selected_place_id = None
        self._seq += 1
        self._cancel_fetch()

        query = text.strip()
        if len(query) < self._min_length:
            self.suggestions = []
            self._dismiss()
            return
        self._fetch_task = asyncio.get_running_loop().create_task(self._debounced_fetch(self._seq, query))

    async def _debounced_fetch(self, seq: int, query: str) -> None:
        await asyncio.sleep(self._debounce)
        if seq != self._seq:
            return
        try:
            found = await asyncio.to_thread(self._provider.autocomplete, query, session_token=self._session_token)
        except GeocodingError as exc:
            _LOG.warning("autocomplete failed: %s", exc)
            found = []
        if seq != self._seq or query != self.text.strip():
            return
        self.suggestions = [item for item in found if item.description and item.place_id]
        self.highlighted = -1
        self.is_open = bool(self.suggestions)

    def move_down(self) -> None:
        if not self.is_open or not self.suggestions:
            return
        self.highlighted = min(self.highlighted + 1, len(self.suggestions) - 1)

    def move_up(self) -> None:
        if not self.is_open or not self.suggestions:
            return
        self.highlighted = max(self.highlighted - 1, 0)

    def escape(self) -> None:
        self._dismiss()

    async def confirm(self) -> bool:
        if not self.is_open or not (0 <= self.highlighted < len(self.suggestions)):
            return False
        await self.select(self.suggestions[self.highlighted])
        return True

    async def select(self, suggestion: PlaceSuggestion) -> Optional[PlaceDetails]:
        self._cancel_blur()
        self._cancel_fetch()
        self._seq += 1
        self.text = suggestion.description
        self.selected_place_id = suggestion.place_id
        self.suggestions = []
        self._dismiss()

        try:
            details = await asyncio.to_thread(
                self._provider.place_details,
                suggestion.place_id,
                session_token=self._session_token,
            )
        except GeocodingError as exc:
            _LOG.warning("place details failed: %s", exc)
            details = None
        if self.selected_place_id != suggestion.place_id:
            return None
        if details is None:
            self.selected = PlaceDetails(text=suggestion.description, lat=None, lng=None)
        else:
            self.selected = PlaceDetails(text=suggestion.description, lat=details.lat, lng=details.lng)
        return self.selected

    def use_location(self, place: PlaceDetails) -> None:
        """Fill the field from the "current location" button."""
        self._cancel_fetch()
        self._seq += 1
        self.text = place.text
        self.selected = place
        self.selected_place_id = None
        self.suggestions = []
        self._dismiss()

    def on_focus(self) -> None:
        self._cancel_blur()
        if self.suggestions:
            self.is_open = True

    def on_blur(self) -> None:
        self._cancel_blur()
        self._blur_task = asyncio.get_running_loop().create_task(self._dismiss_after_grace())

    async def _dismiss_after_grace(self) -> None:
        await asyncio.sleep(self._blur_grace)
        self._dismiss()

    async def settle(self) -> None:
        tasks = [task for task in (self._fetch_task, self._blur_task) if task is not None]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def close(self) -> None:
        self._cancel_fetch()
        self._cancel_blur()
