"""
Headline Neutralizer - rewrite sensational headlines into neutral ones

This is the main public API module.
"""

from .core.engine import Neutralizer
from .core.models import ChangeRecord, Document, Node, Stats
from .core.settings import NeutralizerSettings

__version__ = "0.1.0"
__all__ = [
    "Neutralizer",
    "NeutralizerSettings",
    "Document",
    "Node",
    "ChangeRecord",
    "Stats",
]
