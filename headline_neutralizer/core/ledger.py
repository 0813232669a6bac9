"""
Apply accepted rewrites to nodes and keep the audit trail
"""
from __future__ import annotations

import logging
import re
from typing import Iterable, List, Mapping, Optional, Sequence, Set

from .models import CHANGED_ATTR, MODE_ATTR, ORIGINAL_ATTR, ChangeRecord, Node, Stats
from .text import normalize

logger = logging.getLogger(__name__)


QUOTE_SPAN = re.compile(r"[\"“”«»](.*?)[\"“”«»]")


def quote_protect(original: str, rewritten: str) -> str:
    """Put the quoted spans of the original back into the rewrite

    The n-th quoted span of the rewrite is replaced by the n-th quoted span
    of the original.
    """
    quotes = [match.group(0) for match in QUOTE_SPAN.finditer(original)]
    if not quotes:
        return rewritten

    pieces: List[str] = []
    last = 0
    for quote, match in zip(quotes, QUOTE_SPAN.finditer(rewritten)):
        pieces.append(rewritten[last:match.start()])
        pieces.append(quote)
        last = match.end()
    pieces.append(rewritten[last:])
    return "".join(pieces)


class Ledger:
    """Seen set, change records and counters for one session"""

    def __init__(self, show_original_on_hover: bool = True):
        self.show_original_on_hover = show_original_on_hover
        self.stats = Stats()
        self.changes: List[ChangeRecord] = []
        self.seen: Set[int] = set()

    def is_seen(self, node: Node) -> bool:
        return node.handle in self.seen

    def apply(
        self,
        targets: Mapping[str, Sequence[Node]],
        originals: Sequence[str],
        rewrites: Sequence[Optional[str]],
        source: str,
        seen: Optional[Set[int]] = None,
    ) -> int:
        """Rewrite every unseen node mapped to each original; returns nodes changed"""
        seen = self.seen if seen is None else seen
        changed_batch = 0
        local_changes: List[ChangeRecord] = []

        for index, original in enumerate(originals):
            rewritten = (rewrites[index] if index < len(rewrites) else None) or ""
            rewritten = rewritten.strip()
            if not rewritten or rewritten == original:
                continue
            rewritten = quote_protect(original, rewritten)

            nodes = list(targets.get(original, ()))
            changed = 0
            for node in nodes:
                if node.handle in seen:
                    continue
                before = normalize(node.text_content)
                if not before:
                    continue

                node.attrs.setdefault(ORIGINAL_ATTR, before)
                if self.show_original_on_hover:
                    node.attrs.setdefault("title", before)
                node.set_text(rewritten)
                node.attrs[CHANGED_ATTR] = "1"
                seen.add(node.handle)
                changed += 1

            if changed:
                mode = nodes[0].get(MODE_ATTR) or "auto"
                logger.debug('[%s] (%s) "%s" -> "%s" on %d element(s)', source, mode, original, rewritten, changed)
                local_changes.append(
                    ChangeRecord(
                        original=original,
                        rewritten=rewritten,
                        applied_count=changed,
                        source=source,
                        mode=mode,
                    )
                )
                changed_batch += changed

        if changed_batch:
            if source == "live":
                self.stats.live += changed_batch
            elif source == "cache":
                self.stats.cache += changed_batch
            self.stats.total = self.stats.live + self.stats.cache
            self.changes.extend(local_changes)
        return changed_batch

    @staticmethod
    def restore(nodes: Iterable[Node]) -> int:
        """Put the recorded original text back on changed nodes"""
        restored = 0
        for node in nodes:
            original = node.get(ORIGINAL_ATTR)
            if node.get(CHANGED_ATTR) == "1" and original is not None:
                node.set_text(original)
                restored += 1
        logger.debug("restored originals on %d elements", restored)
        return restored

    def reset_stats(self) -> None:
        self.stats.reset()
        self.changes.clear()
