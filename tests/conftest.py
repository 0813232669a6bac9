"""
Pytest configuration and fixtures
"""
import sys
from pathlib import Path
from typing import Dict, List, Optional

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from headline_neutralizer.core.models import Document, Node  # noqa: E402
from headline_neutralizer.core.settings import NeutralizerSettings  # noqa: E402
from headline_neutralizer.core.storage import MemoryStore  # noqa: E402


class FakeProvider:
    """Rewrite provider returning canned rewrites and recording each batch"""

    def __init__(self, rewrites: Optional[Dict[str, str]] = None, error: Optional[Exception] = None):
        self.rewrites = rewrites or {}
        self.error = error
        self.calls: List[List[str]] = []

    async def rewrite(self, texts):
        self.calls.append(list(texts))
        if self.error is not None:
            raise self.error
        return [self.rewrites.get(text, text) for text in texts]


class FakeClock:
    """Strictly increasing timestamps, one second apart"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        self.now += 1.0
        return self.now


@pytest.fixture
def settings() -> NeutralizerSettings:
    return NeutralizerSettings(flush_delay_ms=0)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def provider_factory():
    return FakeProvider


@pytest.fixture
def breaking_card_page():
    """One card holding the same sensational headline twice"""
    text = "BREAKING: Senator Shocks Nation With Wild Claims!!!"
    heading = Node(tag="h2", text=text, font_size=24, font_weight=700)
    link = Node(tag="a", text=text, attrs={"href": "/politics/senator"})
    card = Node(tag="article", attrs={"class": "card"}, children=[heading, link])
    document = Document(Node(tag="body", children=[card]))
    return document, heading, link, text
