"""
Rewrite cache - bounded, host-scoped, with deferred trimming
"""
from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, Optional, Tuple

from .deferred import DeferredCall
from .settings import NeutralizerSettings
from .storage import CACHE_KEY

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    rewritten: str
    last_touched: float

    def to_dict(self) -> Dict[str, object]:
        return {"r": self.rewritten, "t": self.last_touched}


class RewriteCache:
    """Map of ``host|text`` to rewritten text

    Reads refresh ``last_touched``. Growing past ``cache_limit`` schedules a
    trim on the next loop iteration which drops the least recently touched
    entries down to ``cache_trim_to``; smaller writes are persisted after a
    quiet period. Needs a running event loop for ``set``.
    """

    def __init__(
        self,
        store,
        settings: Optional[NeutralizerSettings] = None,
        clock: Callable[[], float] = time.time,
    ):
        settings = settings or NeutralizerSettings()
        self.store = store
        self.limit = settings.cache_limit
        self.trim_to = settings.cache_trim_to
        self.clock = clock
        self.host = ""
        self.dirty = False
        self.entries: Dict[str, CacheEntry] = {}
        self._trim_call = DeferredCall(self._trim)
        self._persist_call = DeferredCall(self.persist, delay=settings.persist_delay)

    async def load(self, host: str) -> None:
        self.host = host
        stored = await self.store.get(CACHE_KEY, "{}")
        try:
            payload = json.loads(stored or "{}")
            if not isinstance(payload, dict):
                raise ValueError("cache payload is not an object")
            self.entries = {
                key: CacheEntry(rewritten=str(value["r"]), last_touched=float(value["t"]))
                for key, value in payload.items()
            }
        except (ValueError, TypeError, KeyError):
            logger.info("cache parse error, resetting")
            self.entries = {}
            return
        logger.debug("cache loaded: %d entries", len(self.entries))

    def key_for(self, text: str) -> str:
        return f"{self.host}|{text}"

    def get(self, text: str) -> Optional[str]:
        """Cached rewrite; a hit counts as a touch"""
        key = self.key_for(text)
        entry = self.entries.pop(key, None)
        if entry is None:
            return None
        entry.last_touched = self.clock()
        self.entries[key] = entry
        self.dirty = True
        return entry.rewritten

    def peek(self, text: str) -> Optional[str]:
        entry = self.entries.get(self.key_for(text))
        return entry.rewritten if entry is not None else None

    def __contains__(self, text: str) -> bool:
        return self.key_for(text) in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def items(self) -> Iterator[Tuple[str, CacheEntry]]:
        return iter(list(self.entries.items()))

    def set(self, text: str, rewritten: str) -> None:
        key = self.key_for(text)
        self.entries.pop(key, None)
        self.entries[key] = CacheEntry(rewritten=rewritten, last_touched=self.clock())
        self.dirty = True

        if len(self.entries) > self.limit:
            self._trim_call.arm()
        else:
            self._persist_call.rearm()

    @property
    def trim_pending(self) -> bool:
        return self._trim_call.armed

    def _trim(self):
        size = len(self.entries)
        if size <= self.limit:
            return None

        # stable sort keeps touch order for equal timestamps
        oldest_first = sorted(self.entries, key=lambda key: self.entries[key].last_touched)
        for key in oldest_first[: max(0, size - self.trim_to)]:
            del self.entries[key]

        logger.debug("cache trimmed: %d -> %d", size, len(self.entries))
        self._persist_call.cancel()
        return self.persist()

    async def persist(self) -> None:
        payload = json.dumps(
            {key: entry.to_dict() for key, entry in self.entries.items()},
            ensure_ascii=False,
        )
        try:
            await self.store.set(CACHE_KEY, payload)
        except Exception as exc:
            logger.debug("cache persist failed: %s", exc)
            return
        self.dirty = False

    async def clear(self) -> None:
        self._trim_call.cancel()
        self._persist_call.cancel()
        self.entries = {}
        await self.persist()

    async def close(self) -> None:
        """Run an overdue trim, cancel timers and write unsaved changes"""
        trim_due = self._trim_call.armed
        self._trim_call.cancel()
        self._persist_call.cancel()
        saving = self._trim() if trim_due else None
        if saving is not None:
            await saving
        elif self.dirty:
            await self.persist()
