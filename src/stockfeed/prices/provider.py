"""Price source and adapter protocols, plus the ordered fallback chain.

Architecture
------------
The price system uses an adapter pattern to decouple data sources from
the ingestor:

    Provider HTTP API → PriceAdapter → list[PriceRow] → PriceSource → ProviderChain

- **PriceAdapter** transforms one provider's raw payload into canonical
  ``PriceRow`` records. Adapters are pure: no I/O.

- **PriceSource** owns the HTTP side for one provider and answers
  ``fetch_symbol(spec)`` with rows, or None when it has nothing.

- **ProviderChain** holds an ordered list of sources and returns the
  first non-empty answer. Adding a provider means appending a source;
  the ingestor never changes.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, Sequence, runtime_checkable

from stockfeed.core.exceptions import ProviderError, ProviderUnavailableError
from stockfeed.core.models import PriceRow, SymbolSpec

logger = logging.getLogger(__name__)


@runtime_checkable
class PriceAdapter(Protocol):
    """Transforms a raw provider payload into PriceRow records.

    Parameters
    ----------
    raw_data : Any
        The decoded response body (or the relevant sub-object of it).
    spec : SymbolSpec
        The instrument the data belongs to; supplies name and sector.

    Returns
    -------
    list[PriceRow]
        Canonical rows sorted by date ascending, clamped to the adapter's
        trailing window. Empty when the payload carries no series.
    """

    def adapt(self, raw_data: Any, spec: SymbolSpec) -> list[PriceRow]: ...


@runtime_checkable
class PriceSource(Protocol):
    """One provider's fetch capability.

    ``fetch_symbol`` returns None (or an empty list) when the provider has
    no data for the symbol, and raises ``ProviderError`` for failures the
    chain should log before moving on.
    """

    name: str

    async def fetch_symbol(self, spec: SymbolSpec) -> list[PriceRow] | None: ...

    async def close(self) -> None: ...


class ProviderChain:
    """Ordered list of price sources tried until one succeeds.

    Parameters
    ----------
    sources : Sequence[PriceSource]
        Sources in priority order. The first is the primary provider.
    """

    def __init__(self, sources: Sequence[PriceSource]) -> None:
        if not sources:
            raise ValueError("ProviderChain needs at least one source")
        self._sources = list(sources)

    @property
    def sources(self) -> list[PriceSource]:
        return list(self._sources)

    async def fetch_symbol(self, spec: SymbolSpec) -> list[PriceRow]:
        """Return rows from the first source that has any.

        Raises:
            ProviderUnavailableError: every source returned nothing or failed.
        """
        tried: list[str] = []
        for index, source in enumerate(self._sources):
            tried.append(source.name)
            if index > 0:
                logger.warning("Falling back to %s for %s", source.name, spec.symbol)
            try:
                rows = await source.fetch_symbol(spec)
            except ProviderError as e:
                logger.error("%s failed for %s: %s", source.name, spec.symbol, e)
                continue

            if rows:
                logger.info("%s provided %d rows for %s", source.name, len(rows), spec.symbol)
                return rows
            logger.warning("%s returned no data for %s", source.name, spec.symbol)

        raise ProviderUnavailableError(
            f"All providers failed for {spec.symbol}",
            context={"symbol": spec.symbol, "providers": tried},
        )

    async def close(self) -> None:
        for source in self._sources:
            await source.close()
