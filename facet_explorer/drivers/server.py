"""
Remote store driver.

Every metadata operation and get_data emits one request over the injected
transport (anything with `async emit(event, payload)`) and waits for the
paired push:

    scanData, setMinMax, setCategories, setPercentiles -> syncFacets{datasetId}
    getData                                            -> newData..., newMetaData

Outstanding requests are tracked as futures in `pending`, keyed by
("scanData", datasetId), (op, datasetId, facetId) or ("getData", filter ids).
Responses are applied by the session whether or not a request is waiting
(last write wins); this driver only completes the waiting futures.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Hashable, List, Mapping

from facet_explorer.core.dataset import Dataset
from facet_explorer.core.dataview import Dataview
from facet_explorer.core.exceptions import NotConnectedError
from facet_explorer.core.facet import Facet
from facet_explorer.core.filter import Filter

from . import messages
from .base import Driver

logger = logging.getLogger(__name__)


class ServerDriver(Driver):
    session_type = "server"

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.pending: Dict[Hashable, asyncio.Future] = {}

    def connect(self) -> None:
        self.is_connected = self.transport is not None
        if not self.is_connected:
            logger.error("Cannot connect without a transport")

    def disconnect(self) -> None:
        """Abandon every outstanding request; nothing is retried."""
        self.is_connected = False
        for key, future in self.pending.items():
            if not future.done():
                future.set_exception(NotConnectedError(f"Disconnected while waiting for {key[0]}"))
        if self.pending:
            logger.warning("Abandoned pending requests", extra={"n_pending": len(self.pending)})
        self.pending.clear()

    # -------------------------------------------------------------------------
    # Requests
    # -------------------------------------------------------------------------
    async def _request(self, key: Hashable, event: str, payload: Dict[str, Any]) -> Any:
        if not self.is_connected or self.transport is None:
            raise NotConnectedError(f"Cannot send '{event}': not connected")

        future = self.pending.get(key)
        created = future is None or future.done()
        if created:
            future = asyncio.get_running_loop().create_future()
            self.pending[key] = future

        logger.debug("Sending request", extra={"event": event, "locked_down": self.is_locked_down})
        try:
            await self.transport.emit(event, payload)
        except Exception:
            # nothing was sent, so nothing will answer this future
            if created and self.pending.get(key) is future:
                del self.pending[key]
            raise
        return await future

    async def scan(self, dataset: Dataset) -> None:
        await self._request(
            (messages.SCAN_DATA, dataset.id),
            messages.SCAN_DATA,
            messages.scan_data(dataset, self.is_locked_down),
        )

    async def _facet_request(self, event: str, dataset: Dataset, facet: Facet) -> None:
        await self._request(
            (event, dataset.id, facet.id),
            event,
            messages.facet_request(dataset, facet, self.is_locked_down),
        )

    async def set_min_max(self, dataset: Dataset, facet: Facet) -> None:
        await self._facet_request(messages.SET_MIN_MAX, dataset, facet)

    async def set_categories(self, dataset: Dataset, facet: Facet) -> None:
        await self._facet_request(messages.SET_CATEGORIES, dataset, facet)

    async def set_percentiles(self, dataset: Dataset, facet: Facet) -> None:
        await self._facet_request(messages.SET_PERCENTILES, dataset, facet)

    async def get_data(self, dataview: Dataview) -> None:
        datasets = [self.datasets[i] for i in dataview.dataset_ids if i in self.datasets]
        await self._request(
            (messages.GET_DATA, tuple(messages.filter_ids(dataview))),
            messages.GET_DATA,
            messages.get_data(dataview, datasets, self.is_locked_down),
        )

    # -------------------------------------------------------------------------
    # Filters: the remote store is stateless per request
    # -------------------------------------------------------------------------
    def init_data_filter(self, dataview: Dataview, flt: Filter) -> None:
        return None

    def update_data_filter(self, flt: Filter) -> None:
        return None

    def release_data_filter(self, flt: Filter) -> None:
        flt.data = []

    # -------------------------------------------------------------------------
    # Responses
    # -------------------------------------------------------------------------
    def _waiting_for(self, event: str, payload: Mapping[str, Any]) -> List[Hashable]:
        if event == messages.SYNC_FACETS:
            dataset_id = payload.get("datasetId")
            ops = (messages.SCAN_DATA,) + messages.FACET_REQUESTS
            return [k for k in self.pending if k[0] in ops and k[1] == dataset_id]
        if event == messages.NEW_META_DATA:
            return [k for k in self.pending if k[0] == messages.GET_DATA]
        return []

    def handle_response(self, event: str, payload: Mapping[str, Any]) -> None:
        if event not in (messages.SYNC_FACETS, messages.NEW_META_DATA):
            return

        keys = self._waiting_for(event, payload)
        if not keys:
            logger.debug("Unsolicited or duplicate response", extra={"event": event})
            return

        for key in keys:
            future = self.pending.pop(key)
            if not future.done():
                future.set_result(dict(payload))
