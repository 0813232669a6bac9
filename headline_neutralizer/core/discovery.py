"""
Candidate discovery - seed queries, text hosts, per-card top-K and merging
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from .models import Candidate, Document, Node, NodePredicate
from .scoring import is_hard_reject, score
from .selectors import compile_selector, is_card
from .settings import NeutralizerSettings
from .text import normalize, within_len

logger = logging.getLogger(__name__)


SEED_SELECTORS = [
    'h1, h2, h3, h4, [role="heading"], [aria-level], [itemprop="headline"]',
    ".lead, .deck, .standfirst, .subhead, .kicker, .teaser, .title, .headline",
]
_CARD_DESCENDANT_TAGS = {"h1", "h2", "h3", "a"}


def text_of(node: Node) -> str:
    return normalize(node.text_content)


def find_text_host(node: Node, settings: NeutralizerSettings) -> Node:
    """Most specific descendant that carries the display text"""
    for tag in ("p", "a"):
        child = next((c for c in node.children if c.tag == tag), None)
        if child is not None and within_len(text_of(child), settings.min_len, settings.max_len):
            return child

    kids = node.children
    if len(kids) == 1 and text_of(kids[0]) == text_of(node):
        return kids[0]

    best: Optional[Node] = None
    best_len = 0
    for child in kids:
        length = len(text_of(child))
        if length > best_len:
            best, best_len = child, length
    return best if best is not None and best_len else node


def _inside_card(node: Node) -> bool:
    return node.parent is not None and node.parent.closest(is_card) is not None


def iter_seed_nodes(document: Document, root: Optional[Node] = None) -> Iterable[Node]:
    """Seed queries in order; duplicates are filtered by the caller"""
    for selector in SEED_SELECTORS:
        matches = compile_selector(selector)
        for node in document.iter_nodes(root):
            if matches(node):
                yield node
    for node in document.iter_nodes(root):
        if node.tag in _CARD_DESCENDANT_TAGS and _inside_card(node):
            yield node


def score_seeds(
    document: Document,
    settings: NeutralizerSettings,
    is_excluded: NodePredicate,
    root: Optional[Node] = None,
) -> List[Candidate]:
    """Resolve, filter and score every seed node"""
    seen = set()
    seeds: List[Node] = []
    for node in iter_seed_nodes(document, root):
        if node.handle in seen or not node.visible or is_excluded(node):
            continue
        seen.add(node.handle)
        seeds.append(node)

    scored: List[Candidate] = []
    for seed in seeds:
        host = find_text_host(seed, settings)
        if is_excluded(host):
            continue
        text = text_of(host)
        if not within_len(text, settings.min_len, settings.max_len):
            continue
        if is_hard_reject(host, text):
            continue
        value = score(host, text, settings)
        if value >= settings.score_threshold:
            card = host.closest(is_card)
            scored.append(
                Candidate(
                    node=host,
                    text=text,
                    score=value,
                    group_key=card.handle if card is not None else None,
                )
            )
    return scored


def select_top_k(candidates: Sequence[Candidate], top_k: int) -> List[Candidate]:
    groups: Dict[Optional[int], List[Candidate]] = {}
    for candidate in candidates:
        groups.setdefault(candidate.group_key, []).append(candidate)

    winners: List[Candidate] = []
    for rows in groups.values():
        ranked = sorted(rows, key=lambda row: row.score, reverse=True)
        winners.extend(ranked[:top_k])
    return winners


def dedupe_by_text(candidates: Sequence[Candidate]) -> List[Candidate]:
    """Keep the highest scoring candidate per text; ties keep the first seen"""
    best: Dict[str, Candidate] = {}
    for candidate in candidates:
        current = best.get(candidate.text)
        if current is None or candidate.score > current.score:
            best[candidate.text] = candidate
    return list(best.values())


def discover_candidates(
    document: Document,
    settings: NeutralizerSettings,
    is_excluded: NodePredicate,
    root: Optional[Node] = None,
    scored: Optional[List[Candidate]] = None,
) -> List[Candidate]:
    """Canonical auto candidates, one per distinct text"""
    if not settings.auto_detect:
        return []

    if scored is None:
        scored = score_seeds(document, settings, is_excluded, root)
    canonical = dedupe_by_text(select_top_k(scored, settings.top_k_per_card))

    if settings.debug_scores:
        top = sorted(canonical, key=lambda row: row.score, reverse=True)[:20]
        logger.debug("top candidates: %s", [(row.score, row.text[:120]) for row in top])
    return canonical


def get_manual_matches(
    document: Document,
    settings: NeutralizerSettings,
    is_manual_match: NodePredicate,
    root: Optional[Node] = None,
) -> List[Candidate]:
    matches: List[Candidate] = []
    for node in document.iter_nodes(root):
        if not is_manual_match(node):
            continue
        host = find_text_host(node, settings)
        matches.append(Candidate(node=host, text=text_of(host), mode="manual"))
    return matches


def collect_candidates(
    document: Document,
    settings: NeutralizerSettings,
    is_excluded: NodePredicate,
    is_manual_match: NodePredicate,
    root: Optional[Node] = None,
) -> List[Candidate]:
    """Manual matches and auto candidates, one entry per node, exclusions last

    Every accepted auto node whose text equals a canonical winner is kept as
    well, so all nodes sharing a headline receive its rewrite.
    """
    manual = get_manual_matches(document, settings, is_manual_match, root)
    scored = score_seeds(document, settings, is_excluded, root) if settings.auto_detect else []
    auto = discover_candidates(document, settings, is_excluded, root, scored=scored)
    if auto:
        canonical_texts = {candidate.text for candidate in auto}
        winners = {candidate.node.handle for candidate in auto}
        for candidate in scored:
            if candidate.text in canonical_texts and candidate.node.handle not in winners:
                auto.append(candidate)
                winners.add(candidate.node.handle)

    merged: List[Candidate] = []
    seen = set()
    for candidate in [*manual, *auto]:
        if candidate.node.handle in seen:
            continue
        seen.add(candidate.node.handle)
        if is_excluded(candidate.node):
            continue
        merged.append(candidate)
    return merged
