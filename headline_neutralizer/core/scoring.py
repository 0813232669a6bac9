"""
Headline scoring - tag, style and content signals plus kicker/UI filters
"""
from __future__ import annotations

import re

from .models import Node
from .selectors import is_card, is_ui_container
from .settings import NeutralizerSettings
from .text import has_digit, has_punct, is_all_capsish, lower_ratio, within_len, words

KICKER_PATTERN = re.compile(
    r"(kicker|eyebrow|label|badge|chip|pill|tag|topic|category|section|watch|brief|update|live|breaking)",
    re.IGNORECASE,
)

UI_LABELS = re.compile(
    r"\b(comments?|repl(?:y|ies)|share|watch|play|read(?:\s*more)?|more|menu|subscribe|login"
    r"|sign ?in|sign ?up|search|next|previous|prev|back|trending|latest|live|open|close|expand"
    r"|collapse|video|audio|podcast|gallery|photos?)\b",
    re.IGNORECASE,
)

QUOTE_MARKS = re.compile(r"[\"“”«»]")

_TAG_SCORES = {"h1": 100, "h2": 90, "h3": 80, "h4": 65, "a": 60}


def tag_score(node: Node) -> int:
    if node.tag in _TAG_SCORES:
        return _TAG_SCORES[node.tag]
    if node.get("role") == "heading":
        return 75
    if re.search(r"headline", node.get("itemprop") or "", re.IGNORECASE):
        return 85
    return 50


def style_score(node: Node) -> float:
    size = node.font_size or 0
    weight = node.font_weight or 400
    score = 0.0
    if size:
        score += min(40, (size - 12) * 2)
        if size < 14:
            score -= 30
    if weight >= 700:
        score += 12
    elif weight >= 600:
        score += 8
    elif weight >= 500:
        score += 4
    return score


def content_score(text: str, settings: NeutralizerSettings) -> int:
    count = len(words(text))
    if count < settings.min_words:
        return -40
    if count > settings.max_words:
        return -20
    score = 0
    if has_punct(text):
        score += 8
    if has_digit(text):
        score += 4
    if lower_ratio(text) < 0.2:
        score -= 25
    if QUOTE_MARKS.search(text):
        score += 2
    return score


def is_likely_kicker(node: Node, text: str, settings: NeutralizerSettings) -> bool:
    """Short all-caps labels, or nodes whose class/id reads like a label"""
    few_words = len(words(text)) <= 4
    no_end_punct = not re.search(r"[.?!]$", text)
    if settings.kicker_filter_strict and few_words and no_end_punct and is_all_capsish(text):
        return True
    if node.class_name and KICKER_PATTERN.search(node.class_name):
        return True
    return bool(node.node_id and KICKER_PATTERN.search(node.node_id))


def is_hard_reject(node: Node, text: str) -> bool:
    count = len(words(text))
    if node.closest(is_ui_container):
        return True
    if UI_LABELS.search(text):
        return True
    href = (node.get("href") or "") if node.tag == "a" else ""
    if "#" in href or re.search(r"comment", href, re.IGNORECASE):
        return True
    if count <= 2 and not has_punct(text) and len(text) < 18:
        return True
    if is_all_capsish(text) and count <= 4 and not has_punct(text):
        return True
    return False


def score(node: Node, text: str, settings: NeutralizerSettings) -> float:
    total = tag_score(node) + style_score(node) + content_score(text, settings)
    if node.closest(is_card):
        total += 10
    if is_likely_kicker(node, text, settings):
        total -= 50
    if node.tag == "a" and len(words(text)) <= 3 and not has_punct(text):
        total -= 24
    return total


def is_acceptable(node: Node, text: str, settings: NeutralizerSettings) -> bool:
    """Length bounds, hard rejects and the score threshold"""
    if not within_len(text, settings.min_len, settings.max_len):
        return False
    if is_hard_reject(node, text):
        return False
    return score(node, text, settings) >= settings.score_threshold
