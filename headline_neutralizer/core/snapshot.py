"""
Page snapshots - rendered pages saved as HTML, or described in YAML/JSON
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

import yaml
from bs4 import BeautifulSoup, Tag

from .errors import SnapshotError
from .models import HTML_PARSER_OPTIONS, Document, Node, is_tag_name

_NODE_KEYS = {"tag", "text", "class", "id", "attrs", "font_size", "font_weight", "visible", "children"}
HTML_SUFFIXES = (".html", ".htm")
_SKIPPED_TAGS = {"script", "style", "template", "noscript"}

_FONT_SIZE = re.compile(r"(?:^|;)\s*font-size\s*:\s*(\d+(?:\.\d+)?)\s*(px|pt|rem|em)?", re.IGNORECASE)
_FONT_WEIGHT = re.compile(r"(?:^|;)\s*font-weight\s*:\s*([a-z0-9]+)", re.IGNORECASE)
_HIDDEN_STYLE = re.compile(r"display\s*:\s*none|visibility\s*:\s*hidden", re.IGNORECASE)
_UNIT_SCALE = {"px": (1, 1), "pt": (4, 3), "em": (16, 1), "rem": (16, 1)}
_WEIGHT_KEYWORDS = {"normal": 400, "bold": 700, "bolder": 700, "lighter": 300}


@dataclass
class SiteRules:
    """Selectors and exclusions stored globally and per host"""
    selectors: List[str] = field(default_factory=list)
    excludes: Dict[str, List[str]] = field(default_factory=lambda: {"self": [], "ancestors": []})
    domain_selectors: Dict[str, List[str]] = field(default_factory=dict)
    domain_excludes: Dict[str, Dict[str, List[str]]] = field(default_factory=dict)


@dataclass
class Snapshot:
    host: str
    document: Document
    rules: SiteRules = field(default_factory=SiteRules)


def node_from_dict(data: Any, path: str = "page") -> Node:
    if isinstance(data, str):
        return Node(tag="span", text=data)
    if not isinstance(data, dict):
        raise SnapshotError(f"{path}: expected a mapping, got {type(data).__name__}")

    unknown = set(data) - _NODE_KEYS
    if unknown:
        raise SnapshotError(f"{path}: unknown keys {sorted(unknown)}")

    tag = str(data.get("tag") or "div").lower()
    if not is_tag_name(tag):
        raise SnapshotError(f"{path}: invalid tag name {tag!r}")

    attrs = {str(key): str(value) for key, value in (data.get("attrs") or {}).items()}
    if data.get("class"):
        attrs["class"] = str(data["class"])
    if data.get("id"):
        attrs["id"] = str(data["id"])

    try:
        font_size = float(data.get("font_size") or 0)
        font_weight = int(data.get("font_weight") or 400)
    except (TypeError, ValueError) as exc:
        raise SnapshotError(f"{path}: bad style value") from exc

    children = [
        node_from_dict(child, f"{path}/{tag}[{index}]")
        for index, child in enumerate(data.get("children") or [])
    ]
    return Node(
        tag=tag,
        text=str(data.get("text") or ""),
        attrs=attrs,
        font_size=font_size,
        font_weight=font_weight,
        visible=bool(data.get("visible", True)),
        children=children,
    )


def node_to_dict(node: Node) -> Dict[str, Any]:
    data: Dict[str, Any] = {"tag": node.tag}
    if node.text:
        data["text"] = node.text
    attrs = dict(node.attrs)
    if "class" in attrs:
        data["class"] = attrs.pop("class")
    if "id" in attrs:
        data["id"] = attrs.pop("id")
    if attrs:
        data["attrs"] = attrs
    if node.font_size:
        data["font_size"] = node.font_size
    if node.font_weight != 400:
        data["font_weight"] = node.font_weight
    if not node.visible:
        data["visible"] = False
    if node.children:
        data["children"] = [node_to_dict(child) for child in node.children]
    return data


def style_hints(element: Tag) -> Tuple[float, int, bool]:
    """Font size in px, font weight and hidden flag from inline style and ``hidden``"""
    style = element.get("style") or ""
    font_size = 0.0
    match = _FONT_SIZE.search(style)
    if match:
        multiplier, divisor = _UNIT_SCALE[(match.group(2) or "px").lower()]
        font_size = float(match.group(1)) * multiplier / divisor

    font_weight = 400
    match = _FONT_WEIGHT.search(style)
    if match:
        value = match.group(1).lower()
        font_weight = int(value) if value.isdigit() else _WEIGHT_KEYWORDS.get(value, 400)

    hidden = element.has_attr("hidden") or bool(_HIDDEN_STYLE.search(style))
    return font_size, font_weight, hidden


def node_from_element(element: Tag, parent_visible: bool = True) -> Node:
    """Wrap a parsed tag and its element children; script-like tags are left out"""
    font_size, font_weight, hidden = style_hints(element)
    node = Node(
        element=element,
        font_size=font_size,
        font_weight=font_weight,
        visible=parent_visible and not hidden,
    )
    for child in element.find_all(True, recursive=False):
        if child.name in _SKIPPED_TAGS:
            continue
        kid = node_from_element(child, node.visible)
        kid.parent = node
        node.children.append(kid)
    return node


def page_host(soup: BeautifulSoup) -> str:
    """Host from the canonical link or og:url, empty when neither is present"""
    link = soup.find("link", rel="canonical")
    meta = soup.find("meta", attrs={"property": "og:url"})
    for url in (link.get("href") if link else None, meta.get("content") if meta else None):
        if url:
            host = urlparse(url).hostname
            if host:
                return host
    return ""


def parse_html_snapshot(markup: str, host: str = "") -> Snapshot:
    """Parse a saved page; style hints come from inline styles"""
    soup = BeautifulSoup(markup, **HTML_PARSER_OPTIONS)
    body = soup.body or soup.find(True)
    if body is None:
        raise SnapshotError("HTML snapshot has no elements")
    return Snapshot(
        host=host or page_host(soup),
        document=Document(node_from_element(body), soup=soup),
    )


def _rules_from_dict(data: Dict[str, Any]) -> SiteRules:
    excludes = data.get("excludes") or {}
    return SiteRules(
        selectors=list(data.get("selectors") or []),
        excludes={
            "self": list(excludes.get("self") or []),
            "ancestors": list(excludes.get("ancestors") or []),
        },
        domain_selectors={
            str(host): list(values or []) for host, values in (data.get("domain_selectors") or {}).items()
        },
        domain_excludes={
            str(host): {kind: list((values or {}).get(kind) or []) for kind in ("self", "ancestors")}
            for host, values in (data.get("domain_excludes") or {}).items()
        },
    )


def parse_snapshot(text: str) -> Snapshot:
    """Parse snapshot text; JSON is accepted since it is valid YAML"""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise SnapshotError(f"Snapshot is not valid YAML/JSON: {exc}") from exc

    if not isinstance(data, dict) or "page" not in data:
        raise SnapshotError("Snapshot must be a mapping with a 'page' entry")

    root = node_from_dict(data["page"])
    return Snapshot(
        host=str(data.get("host") or ""),
        document=Document(root),
        rules=_rules_from_dict(data.get("rules") or {}),
    )


def load_snapshot(path: str) -> Snapshot:
    """Load an HTML page (``.html``/``.htm``) or a YAML/JSON description"""
    file_path = Path(path)
    try:
        text = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SnapshotError(f"Cannot read snapshot {path}: {exc}") from exc
    if file_path.suffix.lower() in HTML_SUFFIXES:
        return parse_html_snapshot(text)
    return parse_snapshot(text)


def dump_snapshot(snapshot: Snapshot, path: Optional[str] = None) -> str:
    """Serialize the page; HTML or JSON by path suffix, YAML otherwise"""
    suffix = Path(path).suffix.lower() if path else ""
    if suffix in HTML_SUFFIXES:
        text = snapshot.document.to_html()
    else:
        data: Dict[str, Any] = {"host": snapshot.host, "page": node_to_dict(snapshot.document.root)}
        if suffix == ".json":
            text = json.dumps(data, ensure_ascii=False, indent=2)
        else:
            text = yaml.safe_dump(data, allow_unicode=True, sort_keys=False)

    if path:
        output_path = Path(path)
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_text(text, encoding="utf-8")
        except OSError as exc:
            raise SnapshotError(f"Cannot write snapshot {path}: {exc}") from exc
    return text
