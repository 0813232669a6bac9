"""
Test for candidate discovery and selectors
"""
import pytest

from headline_neutralizer.core.discovery import (
    collect_candidates,
    dedupe_by_text,
    discover_candidates,
    find_text_host,
    get_manual_matches,
    select_top_k,
)
from headline_neutralizer.core.models import UI_ATTR, Candidate, Document, Node
from headline_neutralizer.core.selectors import (
    SelectorError,
    build_exclusion,
    build_manual_matcher,
    compile_selector,
    compile_selectors,
    excludes_for_host,
    merge_lists,
    selectors_for_host,
)
from headline_neutralizer.core.settings import NeutralizerSettings


def _never(node):
    return False


class TestSelectors:
    """Test CSS selector predicates"""

    def test_descendant_and_class(self):
        """Test descendant combinator with a class"""
        link = Node(tag="a", text="Story")
        Node(tag="div", attrs={"class": "title main"}, children=[Node(tag="span", children=[link])])
        assert compile_selector(".title a")(link)
        assert not compile_selector(".title p")(link)

    def test_child_combinator(self):
        """Test that the child combinator only matches direct children"""
        direct = Node(tag="h2", text="Direct")
        nested = Node(tag="h2", text="Nested")
        Node(
            tag="section",
            attrs={"class": "news"},
            children=[direct, Node(tag="div", children=[nested])],
        )
        is_match = build_manual_matcher(["section.news > h2"])
        assert is_match(direct)
        assert not is_match(nested)

    def test_negation_and_relational(self):
        """Test :not(), :has() and sibling combinators"""
        plain = Node(tag="h2", text="Plain")
        promo = Node(tag="h2", attrs={"class": "promo"}, text="Promo")
        card = Node(tag="div", children=[Node(tag="span", attrs={"class": "kicker"}), plain, promo])

        is_match = build_manual_matcher(["h2:not(.promo)"])
        assert is_match(plain)
        assert not is_match(promo)
        assert compile_selector("div:has(> .kicker)")(card)
        assert compile_selector(".kicker + h2")(plain)
        assert not compile_selector(".kicker + h2")(promo)

    def test_attribute_operators(self):
        """Test substring, prefix, suffix and case-insensitive attribute matches"""
        node = Node(tag="nav", attrs={"aria-label": "Site Breadcrumbs", "data-kind": "news-card"})
        assert compile_selector('[aria-label*="breadcrumb" i]')(node)
        assert not compile_selector('[aria-label*="breadcrumb"]')(node)
        assert compile_selector('[data-kind^="news"]')(node)
        assert compile_selector('[data-kind$="card"]')(node)
        assert compile_selector("nav[aria-label]")(node)

    def test_comma_list(self):
        """Test that a selector list matches any of its selectors"""
        predicate = compile_selector("h1, .lead")
        assert predicate(Node(tag="h1"))
        assert predicate(Node(tag="p", attrs={"class": "lead"}))
        assert not predicate(Node(tag="p"))

    def test_invalid_selector(self):
        """Test that invalid CSS raises SelectorError"""
        with pytest.raises(SelectorError):
            compile_selector("h2:hovering")
        with pytest.raises(SelectorError):
            compile_selector("  ")

    def test_bad_selectors_are_skipped(self):
        """Test that one bad manual selector does not disable the others"""
        predicate = compile_selectors(["h2:hovering", "h2"])
        assert predicate(Node(tag="h2"))

    def test_exclusion_rules(self):
        """Test engine UI, editable fields, self and ancestor exclusions"""
        is_excluded = build_exclusion(["h4"], ["footer"])
        in_footer = Node(tag="h2")
        Node(tag="footer", children=[Node(tag="div", children=[in_footer])])
        own_ui = Node(tag="h2")
        Node(tag="div", attrs={UI_ATTR: "1"}, children=[own_ui])
        editable = Node(tag="h2")
        Node(tag="div", attrs={"contenteditable": "true"}, children=[editable])

        assert is_excluded(in_footer)
        assert is_excluded(own_ui)
        assert is_excluded(editable)
        assert is_excluded(Node(tag="h4"))
        assert not is_excluded(Node(tag="h2"))

    def test_manual_matcher_empty(self):
        """Test that no manual selectors match nothing"""
        assert not build_manual_matcher([])(Node(tag="h1"))

    def test_per_host_merge(self):
        """Test global and per-host selector and exclusion merging"""
        assert merge_lists(["h1", " h2 "], ["h2", "", ".lead"]) == ["h1", "h2", ".lead"]
        assert selectors_for_host("a.example", ["h1"], {"a.example": [".deck"], "b.example": [".x"]}) == [
            "h1",
            ".deck",
        ]
        merged = excludes_for_host(
            "a.example",
            {"self": [], "ancestors": ["footer"]},
            {"a.example": {"self": [".promo"], "ancestors": ["aside"]}},
        )
        assert merged == {"self": [".promo"], "ancestors": ["footer", "aside"]}


class TestDiscovery:
    """Test candidate discovery"""

    def setup_method(self):
        self.settings = NeutralizerSettings()
        self.is_excluded = build_exclusion([], ["footer"])

    def test_text_host_prefers_link_child(self):
        """Test that a link child carries the heading text"""
        link = Node(tag="a", text="Central bank holds rates steady again")
        heading = Node(tag="h2", children=[link])
        assert find_text_host(heading, self.settings) is link

    def test_text_host_uses_longest_child(self):
        """Test that the longest child wins without a p or a child"""
        short = Node(tag="span", text="Live")
        long = Node(tag="span", text="Storm closes schools across the region")
        heading = Node(tag="h2", children=[short, long])
        assert find_text_host(heading, self.settings) is long

    def test_top_k_per_card(self):
        """Test top-K selection per card and at page level"""
        card = Node(tag="article")
        winner = Candidate(node=card, text="winner", score=95, group_key=7)
        loser = Candidate(node=card, text="loser", score=40, group_key=7)
        page_level = Candidate(node=card, text="page", score=80, group_key=None)

        assert select_top_k([loser, winner, page_level], 1) == [winner, page_level]

    def test_dedupe_keeps_highest_score(self):
        """Test that dedupe keeps the first highest score per text"""
        node = Node(tag="h2")
        first = Candidate(node=node, text="same", score=90)
        better = Candidate(node=node, text="same", score=120)
        tie = Candidate(node=node, text="same", score=120)
        assert dedupe_by_text([first, better, tie]) == [better]

    def test_discover_skips_invisible_and_excluded(self):
        """Test that hidden and excluded headings are not candidates"""
        visible = Node(tag="h1", text="Parliament approves the new budget", font_size=30, font_weight=700)
        hidden = Node(tag="h1", text="Hidden story about the new budget", font_size=30, visible=False)
        footer_heading = Node(tag="h2", text="Footer story about the new budget", font_size=24)
        page = Node(tag="body", children=[visible, hidden, Node(tag="footer", children=[footer_heading])])
        document = Document(page)

        found = discover_candidates(document, self.settings, self.is_excluded)
        assert [candidate.node for candidate in found] == [visible]

    def test_auto_detect_off(self):
        """Test that auto detection can be turned off"""
        document = Document(Node(tag="body", children=[Node(tag="h1", text="Parliament approves the new budget")]))
        settings = NeutralizerSettings(auto_detect=False)
        assert discover_candidates(document, settings, self.is_excluded) == []

    def test_kicker_is_not_a_candidate(self):
        """Test that a kicker label loses to the real headline"""
        kicker = Node(tag="h1", text="BREAKING", font_size=32, font_weight=700)
        headline = Node(tag="h2", text="Flooding forces evacuations in the north", font_size=24)
        document = Document(Node(tag="body", children=[Node(tag="article", children=[kicker, headline])]))

        found = discover_candidates(document, self.settings, self.is_excluded)
        assert [candidate.text for candidate in found] == ["Flooding forces evacuations in the north"]

    def test_collect_merges_manual_and_auto(self):
        """Test manual matches first, auto next, exclusions dropped"""
        manual = Node(tag="div", attrs={"class": "promo-text"}, text="Short")
        auto = Node(tag="h1", text="Parliament approves the new budget", font_size=30)
        excluded = Node(tag="h2", attrs={"class": "promo-text"}, text="Excluded promo heading text here")
        document = Document(
            Node(tag="body", children=[manual, auto, Node(tag="footer", children=[excluded])])
        )
        is_manual = build_manual_matcher([".promo-text"])

        found = collect_candidates(document, self.settings, self.is_excluded, is_manual)
        assert [(candidate.node, candidate.mode) for candidate in found] == [
            (manual, "manual"),
            (auto, "auto"),
        ]

    def test_collect_keeps_every_node_with_winning_text(self, breaking_card_page):
        """Test that every node showing a winning text is kept"""
        document, heading, link, text = breaking_card_page

        found = collect_candidates(document, self.settings, self.is_excluded, _never)
        assert {candidate.node.handle for candidate in found} == {heading.handle, link.handle}
        assert all(candidate.text == text for candidate in found)

    def test_manual_matches_resolve_text_host(self):
        """Test that manual matches resolve to their text host"""
        paragraph = Node(tag="p", text="A calm summary of the day")
        lead = Node(tag="div", attrs={"class": "lead"}, children=[paragraph])
        document = Document(Node(tag="body", children=[lead]))

        matches = get_manual_matches(document, self.settings, build_manual_matcher([".lead"]))
        assert [match.node for match in matches] == [paragraph]
