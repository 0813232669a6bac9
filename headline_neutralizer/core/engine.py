"""
Main engine class for headline_neutralizer
"""
from __future__ import annotations

import inspect
import json
import logging
import time
from typing import Callable, Dict, List, Optional, Sequence

from .cache import RewriteCache
from .discovery import collect_candidates
from .ledger import Ledger
from .models import (
    MODE_ATTR,
    Candidate,
    ChangeRecord,
    Document,
    LongTextDecision,
    LongTextItem,
    Node,
    NodePredicate,
    Stats,
)
from .rewriter import create_rewriter
from .scheduler import Advisor, BatchScheduler
from .selectors import DEFAULT_EXCLUDES, DEFAULT_SELECTORS, build_exclusion, build_manual_matcher
from .settings import NeutralizerSettings
from .storage import LONG_TEXT_EXCEPTIONS_KEY, MemoryStore
from .text import normalize, within_len
from .usage import UsageTracker

logger = logging.getLogger(__name__)

ConfirmLongText = Callable[[List[LongTextItem], str], object]


class Neutralizer:
    """Discover headlines on a document and replace them with neutral rewrites"""

    def __init__(
        self,
        document: Document,
        host: str = "",
        settings: Optional[NeutralizerSettings] = None,
        store=None,
        provider=None,
        usage: Optional[UsageTracker] = None,
        is_excluded: Optional[NodePredicate] = None,
        is_manual_match: Optional[NodePredicate] = None,
        confirm_long_text: Optional[ConfirmLongText] = None,
        advisor: Optional[Advisor] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize engine

        Args:
            document: Page to work on
            host: Host name scoping cache keys and long-text exceptions
            settings: Engine settings (defaults read from the environment)
            store: Persistent key/value store (in-memory by default)
            provider: Object with ``async rewrite(texts)``; built from settings if omitted
            is_excluded: Exclusion oracle
            is_manual_match: Manual selector oracle
            confirm_long_text: Asked once per discovery batch about long manual matches
            advisor: Receives provider errors with a user-facing message
        """
        self.document = document
        self.host = host
        self.settings = settings or NeutralizerSettings()
        self.store = store if store is not None else MemoryStore()
        self.usage = usage or UsageTracker.for_model(self.store, self.settings.model_name)
        self.provider = provider or create_rewriter(self.settings, usage=self.usage)
        self.is_excluded = is_excluded or build_exclusion(
            DEFAULT_EXCLUDES["self"], DEFAULT_EXCLUDES["ancestors"]
        )
        self.is_manual_match = is_manual_match or build_manual_matcher(DEFAULT_SELECTORS)
        self.confirm_long_text = confirm_long_text

        self.cache = RewriteCache(self.store, self.settings, clock=clock)
        self.ledger = Ledger(show_original_on_hover=self.settings.show_original_on_hover)
        self.scheduler = BatchScheduler(
            self.cache,
            self.provider,
            self._apply_live,
            self.ledger.stats,
            settings=self.settings,
            advisor=advisor,
        )
        self.targets: Dict[str, Dict[int, Node]] = {}
        self.long_text_exceptions: Dict[str, bool] = {}
        self._long_check_pending = False
        self.started = False

    @property
    def stats(self) -> Stats:
        return self.ledger.stats

    @property
    def changes(self) -> List[ChangeRecord]:
        return self.ledger.changes

    async def start(self) -> None:
        await self.cache.load(self.host)
        await self.usage.load()
        stored = await self.store.get(LONG_TEXT_EXCEPTIONS_KEY, "{}")
        try:
            self.long_text_exceptions = dict(json.loads(stored or "{}"))
        except (ValueError, TypeError):
            self.long_text_exceptions = {}
        self.started = True

    def build_map(self, texts: Sequence[str]) -> Dict[str, List[Node]]:
        """Registered nodes per text, limited to nodes still in the document"""
        mapping: Dict[str, List[Node]] = {}
        for text in texts:
            nodes = [node for node in self.targets.get(text, {}).values() if node in self.document]
            if nodes:
                mapping[text] = nodes
        return mapping

    def _apply(self, originals: Sequence[str], rewrites: Sequence[Optional[str]], source: str, seen=None) -> int:
        return self.ledger.apply(self.build_map(originals), originals, rewrites, source, seen=seen)

    def _apply_live(self, originals: Sequence[str], rewrites: Sequence[Optional[str]], source: str) -> int:
        return self._apply(originals, rewrites, source)

    async def attach_targets(self, root: Optional[Node] = None) -> List[Candidate]:
        """Discover candidates under root and register them for rewriting"""
        candidates = collect_candidates(
            self.document,
            self.settings,
            self.is_excluded,
            self.is_manual_match,
            root,
        )

        accepted: List[Candidate] = []
        too_long: List[Candidate] = []
        for candidate in candidates:
            node = candidate.node
            if self.ledger.is_seen(node) or self.is_excluded(node) or not candidate.text:
                continue
            if candidate.mode == "auto" and not within_len(
                candidate.text, self.settings.min_len, self.settings.max_len
            ):
                continue
            if (
                candidate.mode == "manual"
                and len(candidate.text) > self.settings.sanity_check_len
                and not self.long_text_exceptions.get(self.host)
            ):
                too_long.append(candidate)
            else:
                accepted.append(candidate)

        if too_long and not self._long_check_pending:
            self._long_check_pending = True
            try:
                decision = await self._confirm_long_text(too_long)
            finally:
                self._long_check_pending = False

            if decision in (LongTextDecision.ONCE, LongTextDecision.REMEMBER):
                accepted.extend(too_long)
            if decision == LongTextDecision.REMEMBER:
                self.long_text_exceptions[self.host] = True
                await self.store.set(LONG_TEXT_EXCEPTIONS_KEY, json.dumps(self.long_text_exceptions))

        for candidate in accepted:
            candidate.node.attrs[MODE_ATTR] = candidate.mode
            self.targets.setdefault(candidate.text, {})[candidate.node.handle] = candidate.node
        logger.debug("attached %d targets (%d distinct texts)", len(accepted), len(self.targets))
        return accepted

    async def _confirm_long_text(self, candidates: Sequence[Candidate]) -> LongTextDecision:
        if self.confirm_long_text is None:
            logger.info(
                "skipping %d manual matches longer than %d characters",
                len(candidates),
                self.settings.sanity_check_len,
            )
            return LongTextDecision.SKIP
        items = [LongTextItem(node=c.node, text=c.text) for c in candidates]
        result = self.confirm_long_text(items, self.host)
        if inspect.isawaitable(result):
            result = await result
        return LongTextDecision(result) if result else LongTextDecision.SKIP

    async def on_subtree_added(self, parent: Node, subtree: Node) -> List[Candidate]:
        """Register new content and discover headlines inside it"""
        self.document.adopt(parent, subtree)
        return await self.attach_targets(subtree)

    def on_subtree_removed(self, subtree: Node) -> None:
        """Forget a removed subtree; late results no longer reach its nodes"""
        handles = {node.handle for node in self.document.iter_nodes(subtree)}
        self.document.release(subtree)
        for text in list(self.targets):
            nodes = self.targets[text]
            for handle in handles & nodes.keys():
                del nodes[handle]
            if not nodes:
                del self.targets[text]

    def on_node_visible(self, node: Node) -> None:
        """Visibility signal: apply a cached rewrite or queue the text"""
        if self.scheduler.closed:
            return
        if self.ledger.is_seen(node) or self.is_excluded(node):
            return
        text = normalize(node.text_content)
        if not text or node.handle not in self.targets.get(text, {}):
            return

        cached = self.cache.get(text)
        if cached is not None:
            self._apply([text], [cached], "cache")
        else:
            self.scheduler.enqueue(text)
        self.scheduler.schedule_flush()

    def process_visible_now(self, is_visible: Optional[NodePredicate] = None) -> int:
        """Queue every registered, uncached text whose first node is visible"""
        is_visible = is_visible or (lambda node: node.visible)
        queued = 0
        for text, nodes in self.build_map(list(self.targets)).items():
            if self.cache.peek(text) is not None:
                continue
            first = next((node for node in nodes if not self.ledger.is_seen(node)), None)
            if first is not None and is_visible(first) and self.scheduler.enqueue(text):
                queued += 1
        self.scheduler.schedule_flush()
        return queued

    def restore_originals(self) -> int:
        return self.ledger.restore(self.document.iter_nodes())

    def reapply_from_cache(self) -> int:
        """Apply cached rewrites to every registered node, ignoring the seen set"""
        fresh_seen = set()
        applied = 0
        for text in list(self.targets):
            cached = self.cache.get(text)
            if cached:
                applied += self._apply([text], [cached], "cache", seen=fresh_seen)
        return applied

    async def reindex(self) -> List[Candidate]:
        self.scheduler.clear()
        self.targets.clear()
        self.ledger.seen = set()
        return await self.attach_targets()

    async def flush_cache_and_rerun(self) -> int:
        await self.cache.clear()
        await self.reindex()
        return self.process_visible_now()

    def reset_stats(self) -> None:
        self.ledger.reset_stats()

    async def clear_long_text_exception(self) -> bool:
        if not self.long_text_exceptions.pop(self.host, None):
            return False
        await self.store.set(LONG_TEXT_EXCEPTIONS_KEY, json.dumps(self.long_text_exceptions))
        return True

    async def drain(self) -> None:
        await self.scheduler.drain()

    async def run(self, root: Optional[Node] = None) -> Stats:
        """Attach, signal every visible target and wait for all batches"""
        if not self.started:
            await self.start()
        await self.attach_targets(root)
        for nodes in self.build_map(list(self.targets)).values():
            for node in nodes:
                if node.visible:
                    self.on_node_visible(node)
        await self.drain()
        return self.stats

    async def teardown(self) -> None:
        self.scheduler.close()
        await self.cache.close()
        await self.usage.close()
