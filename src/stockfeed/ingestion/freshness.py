"""Decides whether the price table is due for a bulk re-ingest."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from stockfeed.storage.base import PriceStore

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(moment: datetime) -> datetime:
    """Treat naive timestamps as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


class FreshnessPolicy:
    """Global, binary staleness check against the last ingest timestamp.

    Parameters
    ----------
    store : PriceStore
        Source of the ingest metadata record.
    max_age_hours : float
        Data older than this is stale. Default: 24.
    clock : Clock
        Returns the current time; injectable for tests.
    """

    def __init__(
        self,
        store: PriceStore,
        max_age_hours: float = 24.0,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._max_age = timedelta(hours=max_age_hours)
        self._clock = clock

    async def needs_update(self) -> bool:
        """True when no ingest has been recorded or the last one is too old."""
        meta = await self._store.read_metadata()
        if meta is None:
            logger.info("No ingest metadata found, update needed")
            return True

        age = as_utc(self._clock()) - as_utc(meta.last_ingest)
        stale = age > self._max_age
        logger.debug("Last ingest %s ago (stale=%s)", age, stale)
        return stale
