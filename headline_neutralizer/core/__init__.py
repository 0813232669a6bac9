"""
Headline Neutralizer - rewrite sensational headlines into neutral ones

This package discovers headline-like elements on a page, sends them in
debounced batches to an LLM for neutral rewrites, caches the results per
host and keeps an audit trail of every change.
"""

__version__ = "0.1.0"
__author__ = "OSInsight"
__license__ = "MIT"

from .models import ChangeRecord, Document, Node, Stats
from .engine import Neutralizer

__all__ = [
    "ChangeRecord",
    "Document",
    "Neutralizer",
    "Node",
    "Stats",
]
