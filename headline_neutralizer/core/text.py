"""
Text normalization helpers
"""
from __future__ import annotations

import re
from typing import List

_WHITESPACE = re.compile(r"\s+")
_PUNCT = re.compile(r"[.?!:;—–-]")
_DIGIT = re.compile(r"\d")
_LETTERS = re.compile(r"[A-Za-zΑ-Ωα-ωΆ-Ώά-ώ]")
_LOWER = re.compile(r"[a-zα-ωά-ώ]")
_UPPER = re.compile(r"[A-ZΑ-ΩΆ-Ώ]")
_NON_LETTER = re.compile(r"[^A-Za-zΑ-Ωα-ωΆ-Ώ]")


def normalize(text: str) -> str:
    """Collapse whitespace runs to one space and trim the ends"""
    return _WHITESPACE.sub(" ", text or "").strip()


def within_len(text: str, min_len: int, max_len: int) -> bool:
    return min_len <= len(text) <= max_len


def words(text: str) -> List[str]:
    return [word for word in normalize(text).split(" ") if word]


def has_punct(text: str) -> bool:
    return bool(_PUNCT.search(text))


def has_digit(text: str) -> bool:
    return bool(_DIGIT.search(text))


def lower_ratio(text: str) -> float:
    letters = _LETTERS.findall(text)
    if not letters:
        return 0.0
    return len(_LOWER.findall(text)) / len(letters)


def is_all_capsish(text: str) -> bool:
    """True when at least 85% of the (two or more) letters are uppercase"""
    letters = _NON_LETTER.sub("", text)
    if len(letters) < 2:
        return False
    return len(_UPPER.findall(text)) / len(letters) >= 0.85
