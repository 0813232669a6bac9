"""
Data models for headline_neutralizer
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, Iterator, List, Optional

from bs4 import BeautifulSoup, NavigableString, Tag


ORIGINAL_ATTR = "data-neutralizer-original"
CHANGED_ATTR = "data-neutralizer-changed"
MODE_ATTR = "data-neutralizer-mode"
UI_ATTR = "data-neutralizer-ui"

NodePredicate = Callable[["Node"], bool]

# Attribute values stay plain strings ("class" included)
HTML_PARSER_OPTIONS = {"features": "html.parser", "multi_valued_attributes": None}

_TAG_FACTORY = BeautifulSoup("", **HTML_PARSER_OPTIONS)


def new_element(tag: str, attrs: Optional[Dict[str, str]] = None) -> Tag:
    """Detached BeautifulSoup tag with plain string attributes"""
    return _TAG_FACTORY.new_tag(tag, attrs=dict(attrs or {}))


class Node:
    """An element of a page: a BeautifulSoup tag plus rendered style hints

    The tag holds the name, attributes and text; ``font_size``,
    ``font_weight`` and ``visible`` describe how the element was rendered.
    """

    def __init__(
        self,
        tag: str = "div",
        text: str = "",
        attrs: Optional[Dict[str, str]] = None,
        font_size: float = 0.0,
        font_weight: int = 400,
        visible: bool = True,
        children: Optional[Iterable["Node"]] = None,
        element: Optional[Tag] = None,
        handle: int = 0,
    ):
        self.element = element if element is not None else new_element(tag.lower(), attrs)
        self.font_size = font_size
        self.font_weight = font_weight
        self.visible = visible
        self.parent: Optional[Node] = None
        self.children: List[Node] = []
        self.handle = handle

        if element is None and text:
            self.element.append(text)
        for child in children or []:
            self.append(child)

    @property
    def tag(self) -> str:
        return self.element.name

    @property
    def attrs(self) -> Dict[str, str]:
        return self.element.attrs

    @property
    def class_name(self) -> str:
        value = self.attrs.get("class", "")
        return " ".join(value) if isinstance(value, list) else value

    @property
    def classes(self) -> List[str]:
        return self.class_name.split()

    @property
    def node_id(self) -> str:
        return self.attrs.get("id", "")

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.attrs.get(name, default)

    def has(self, name: str) -> bool:
        return name in self.attrs

    @property
    def text(self) -> str:
        """Own text, without the text of child elements"""
        parts = [
            item.strip()
            for item in self.element.contents
            if type(item) is NavigableString and item.strip()
        ]
        return " ".join(parts)

    @property
    def text_content(self) -> str:
        """Own text and the text of all descendants, in document order"""
        return " ".join(self.element.stripped_strings)

    def set_text(self, value: str) -> None:
        """Replace all content with plain text, detaching the children"""
        for child in self.children:
            child.parent = None
        self.children = []
        self.element.string = value

    def append(self, child: "Node") -> "Node":
        child.parent = self
        self.children.append(child)
        self.element.append(child.element)
        return child

    def detach(self) -> None:
        """Remove this node and its element from the parent"""
        if self.parent is not None:
            self.parent.children = [c for c in self.parent.children if c is not self]
            self.parent = None
        self.element.extract()

    def iter_descendants(self) -> Iterator["Node"]:
        """Depth-first descendants in document order (self excluded)"""
        for child in self.children:
            yield child
            yield from child.iter_descendants()

    def iter_ancestors(self, include_self: bool = False) -> Iterator["Node"]:
        node = self if include_self else self.parent
        while node is not None:
            yield node
            node = node.parent

    def closest(self, predicate: NodePredicate) -> Optional["Node"]:
        """Nearest node, starting at self, matching the predicate"""
        for node in self.iter_ancestors(include_self=True):
            if predicate(node):
                return node
        return None

    def __repr__(self):
        return f"Node({self.tag!r}, handle={self.handle}, text={self.text[:40]!r})"

    def __str__(self):
        ident = f"#{self.node_id}" if self.node_id else ""
        klass = "".join(f".{name}" for name in self.classes)
        return f"<{self.tag}{ident}{klass} handle={self.handle}>"


class Document:
    """Registry of nodes keyed by integer handles

    ``soup`` is set when the page was parsed from HTML; ``to_html`` then
    renders the whole parsed document.
    """

    def __init__(self, root: Optional[Node] = None, soup: Optional[BeautifulSoup] = None):
        self._nodes: Dict[int, Node] = {}
        self._next_handle = 1
        self.soup = soup
        self.root = root if root is not None else Node(tag="body")
        self.register(self.root)

    def register(self, node: Node) -> Node:
        """Assign handles to a node and its whole subtree"""
        for item in [node, *node.iter_descendants()]:
            if item.handle and self._nodes.get(item.handle) is item:
                continue
            item.handle = self._next_handle
            self._next_handle += 1
            self._nodes[item.handle] = item
        return node

    def adopt(self, parent: Node, child: Node) -> Node:
        """Attach a new subtree under parent and register it"""
        parent.append(child)
        return self.register(child)

    def release(self, node: Node) -> None:
        """Deregister a subtree and remove it from the page"""
        for item in [node, *node.iter_descendants()]:
            self._nodes.pop(item.handle, None)
        node.detach()

    def iter_nodes(self, root: Optional[Node] = None) -> Iterator[Node]:
        start = root if root is not None else self.root
        yield start
        yield from start.iter_descendants()

    def to_html(self) -> str:
        if self.soup is not None:
            return str(self.soup)
        return str(self.root.element)

    def __contains__(self, node: Node) -> bool:
        return self._nodes.get(node.handle) is node

    def __len__(self) -> int:
        return len(self._nodes)


@dataclass
class Candidate:
    """A text fragment and its host node considered for rewriting"""
    node: Node
    text: str
    score: float = 0.0
    group_key: Optional[int] = None  # card handle, None for page level
    mode: str = "auto"

    def __str__(self):
        return f"[{self.mode} {self.score:.0f}] {self.text[:80]}"


@dataclass
class ChangeRecord:
    """Ledger entry for one text rewritten during one apply pass"""
    original: str
    rewritten: str
    applied_count: int
    source: str  # "live" or "cache"
    mode: str = "auto"

    def __str__(self):
        return (
            f'[{self.source}] ({self.mode}) "{self.original}" -> "{self.rewritten}" '
            f"on {self.applied_count} element(s)"
        )


@dataclass
class Stats:
    """Running counters for a session"""
    total: int = 0
    live: int = 0
    cache: int = 0
    batches: int = 0

    def reset(self) -> None:
        self.total = self.live = self.cache = self.batches = 0


class LongTextDecision(str, Enum):
    """Answer to the long manual-match confirmation"""
    SKIP = "skip"
    ONCE = "once"
    REMEMBER = "remember"


@dataclass
class LongTextItem:
    node: Node
    text: str

    @property
    def length(self) -> int:
        return len(self.text)


_TAG_PATTERN = re.compile(r"^[a-z][a-z0-9-]*$")


def is_tag_name(value: str) -> bool:
    return bool(_TAG_PATTERN.match(value or ""))
