"""
Selector predicates - CSS selectors matched with soupsieve against page nodes
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Sequence

import soupsieve

from .models import Node, NodePredicate, UI_ATTR

logger = logging.getLogger(__name__)


DEFAULT_SELECTORS = [
    "h1", "h2", "h3", ".lead", '[itemprop="headline"]',
    '[role="heading"]', ".title", ".title a", ".summary",
    ".hn__title-container h2 a", ".article-title",
]

DEFAULT_EXCLUDES: Dict[str, List[str]] = {
    "self": [],
    "ancestors": [
        "footer", "nav", "aside", '[role="navigation"]', ".breadcrumbs",
        '[aria-label*="breadcrumb" i]',
    ],
}

CARD_SELECTOR = (
    'article, [itemtype*="NewsArticle"], .card, .post, .entry, .teaser, '
    '.tile, .story, [data-testid*="card" i]'
)

UI_CONTAINERS = (
    ".meta, .metadata, .byline, .tools, .actions, .card__meta, .card__footer, "
    '.post__meta, [data-testid*="tools" i], [role="toolbar"]'
)

EDITABLE_SELECTOR = 'input, textarea, [contenteditable=""], [contenteditable="true"]'


class SelectorError(ValueError):
    """Raised when a selector is not valid CSS."""


def compile_selector(selector: str) -> NodePredicate:
    """Compile a CSS selector list into a node predicate"""
    if not (selector or "").strip():
        raise SelectorError("Selector cannot be empty.")
    try:
        compiled = soupsieve.compile(selector)
    except soupsieve.SelectorSyntaxError as exc:
        raise SelectorError(f"Invalid selector {selector!r}: {exc}") from exc

    def predicate(node: Node) -> bool:
        return compiled.match(node.element)

    return predicate


def compile_selectors(selectors: Iterable[str]) -> NodePredicate:
    """Compile many selectors, skipping the ones that fail to parse"""
    predicates: List[NodePredicate] = []
    for selector in selectors:
        try:
            predicates.append(compile_selector(selector))
        except SelectorError as exc:
            logger.warning("manual selector error: %s", exc)

    def predicate(node: Node) -> bool:
        return any(test(node) for test in predicates)

    return predicate


def merge_lists(*lists: Iterable[str]) -> List[str]:
    merged: List[str] = []
    for items in lists:
        for item in items:
            clean = (item or "").strip()
            if clean and clean not in merged:
                merged.append(clean)
    return merged


def build_manual_matcher(selectors: Sequence[str]) -> NodePredicate:
    if not selectors:
        return lambda node: False
    return compile_selectors(selectors)


def build_exclusion(
    self_selectors: Sequence[str] = (),
    ancestor_selectors: Sequence[str] = (),
) -> NodePredicate:
    """Exclusion oracle: engine UI, editable fields, excluded elements or containers"""
    is_protected = compile_selector(f"[{UI_ATTR}], {EDITABLE_SELECTOR}")
    matches_self = compile_selectors(self_selectors)
    matches_ancestor = compile_selectors(ancestor_selectors)

    def is_excluded(node: Node) -> bool:
        if node.closest(is_protected):
            return True
        if self_selectors and matches_self(node):
            return True
        if ancestor_selectors and node.closest(matches_ancestor):
            return True
        return False

    return is_excluded


is_card = compile_selector(CARD_SELECTOR)
is_ui_container = compile_selector(UI_CONTAINERS)


def selectors_for_host(
    host: str,
    global_selectors: Sequence[str],
    domain_selectors: Dict[str, Sequence[str]],
) -> List[str]:
    """Global selectors followed by the ones stored for this host"""
    return merge_lists(global_selectors, domain_selectors.get(host, ()))


def excludes_for_host(
    host: str,
    global_excludes: Dict[str, Sequence[str]],
    domain_excludes: Dict[str, Dict[str, Sequence[str]]],
) -> Dict[str, List[str]]:
    domain = domain_excludes.get(host, {})
    return {
        kind: merge_lists(global_excludes.get(kind, ()), domain.get(kind, ()))
        for kind in ("self", "ancestors")
    }
