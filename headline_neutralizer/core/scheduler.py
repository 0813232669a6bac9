"""
Batch scheduler - collect uncached texts and flush them to the rewrite provider
"""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, Dict, List, Optional, Sequence

from .cache import RewriteCache
from .deferred import DeferredCall
from .errors import RewriteError, UnknownRewriteError, friendly_message
from .models import Stats
from .settings import NeutralizerSettings

logger = logging.getLogger(__name__)

ApplyFn = Callable[[Sequence[str], Sequence[Optional[str]], str], int]
Advisor = Callable[[RewriteError, str], None]


def _log_advice(error: RewriteError, message: str) -> None:
    logger.warning(message)


class BatchScheduler:
    """Debounced, bounded batches with at most one flush cycle outstanding

    A cycle is either an armed timer or a provider call in flight. Texts
    enqueued meanwhile wait for the next cycle, which is armed when a cycle
    ends with work left. Texts pulled into a failed batch are dropped.
    """

    def __init__(
        self,
        cache: RewriteCache,
        provider,
        apply: ApplyFn,
        stats: Stats,
        settings: Optional[NeutralizerSettings] = None,
        advisor: Optional[Advisor] = None,
    ):
        settings = settings or NeutralizerSettings()
        self.cache = cache
        self.provider = provider
        self.apply = apply
        self.stats = stats
        self.max_batch = settings.max_batch
        self.advisor = advisor or _log_advice
        self.pending: Dict[str, None] = {}
        self.closed = False
        self._in_flight = False
        self._flush_call = DeferredCall(self.flush, delay=settings.flush_delay)
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def flush_armed(self) -> bool:
        return self._flush_call.armed

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def enqueue(self, text: str) -> bool:
        if text in self.pending or self.cache.peek(text) is not None:
            return False
        self.pending[text] = None
        return True

    def schedule_flush(self) -> bool:
        if self.closed or self._in_flight:
            return False
        armed = self._flush_call.arm()
        if armed:
            self._idle.clear()
        return armed

    def _take_batch(self) -> List[str]:
        batch: List[str] = []
        for text in list(self.pending):
            del self.pending[text]
            if self.cache.peek(text) is not None:
                continue
            batch.append(text)
            if len(batch) == self.max_batch:
                break
        return batch

    async def flush(self) -> int:
        """Send one batch; returns the number of texts sent"""
        if self._in_flight:
            return 0
        self._flush_call.cancel()
        if self.closed:
            self._update_idle()
            return 0

        batch = self._take_batch()
        if not batch:
            self._update_idle()
            return 0

        self._in_flight = True
        self._idle.clear()
        try:
            logger.debug("calling provider for visible batch size %d", len(batch))
            rewrites = await self.provider.rewrite(batch)
        except RewriteError as exc:
            self._advise(exc)
        except Exception as exc:
            self._advise(UnknownRewriteError(str(exc) or exc.__class__.__name__))
        else:
            if not self.closed:
                self._store_results(batch, rewrites)
        finally:
            self._in_flight = False

        if self.pending:
            self.schedule_flush()
        self._update_idle()
        return len(batch)

    def _store_results(self, batch: Sequence[str], rewrites: Sequence[Optional[str]]) -> None:
        for index, text in enumerate(batch):
            value = rewrites[index] if index < len(rewrites) else None
            self.cache.set(text, value if value and value.strip() else text)
        self.apply(batch, rewrites, "live")
        self.stats.batches += 1
        logger.debug(
            "[stats] batches=%d total=%d (live=%d, cache=%d)",
            self.stats.batches,
            self.stats.total,
            self.stats.live,
            self.stats.cache,
        )

    def _advise(self, error: RewriteError) -> None:
        logger.error("rewrite failed: %s (status %s)", error, error.status)
        self.advisor(error, friendly_message(error))

    def _update_idle(self) -> None:
        if not self._flush_call.armed and not self._in_flight:
            self._idle.set()

    async def drain(self) -> None:
        """Wait until no timer is armed and no call is in flight"""
        await self._idle.wait()

    def clear(self) -> None:
        self.pending.clear()
        self._flush_call.cancel()
        self._update_idle()

    def close(self) -> None:
        """Abandon timers; results of a call still in flight are ignored"""
        self.closed = True
        self.clear()
        self._idle.set()
