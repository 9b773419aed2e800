"""Per-provider cache of the most recently loaded items."""

import time
from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass

from heats.config import ProviderSpec
from heats.source.models import LoadedItem


@dataclass(frozen=True)
class CacheEntry:
    items: tuple[LoadedItem, ...]
    last_updated: float


class SourceCache:
    """
    Provider name -> last loaded items.

    Entries are replaced whole, so readers never see a partial update. They
    are never evicted, only refreshed.
    """

    _entries: dict[str, CacheEntry]
    clock: Callable[[], float]

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._entries = {}
        self.clock = clock

    def get(self, name: str) -> list[LoadedItem] | None:
        entry = self._entries.get(name)
        return list(entry.items) if entry is not None else None

    def put(self, name: str, items: Sequence[LoadedItem], now: float | None = None):
        self._entries[name] = CacheEntry(
            items=tuple(items),
            last_updated=self.clock() if now is None else now,
        )

    def last_updated(self, name: str) -> float | None:
        entry = self._entries.get(name)
        return entry.last_updated if entry is not None else None

    def is_stale(self, name: str, interval: float, now: float | None = None) -> bool:
        """True if there is no entry, or ``interval`` seconds have passed since it was stored."""
        entry = self._entries.get(name)
        if entry is None:
            return True
        if now is None:
            now = self.clock()
        return now - entry.last_updated >= interval

    def stale_providers(
        self, providers: Mapping[str, ProviderSpec], now: float | None = None
    ) -> list[str]:
        """Names of cached providers (those with a ``cache_interval``) due for a refresh."""
        if now is None:
            now = self.clock()
        return [
            name
            for name, spec in providers.items()
            if spec.cache_interval is not None and self.is_stale(name, spec.cache_interval, now)
        ]

    def __contains__(self, name: str) -> bool:
        return name in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
