"""
Test for text helpers and headline scoring
"""
from headline_neutralizer.core.models import Node
from headline_neutralizer.core.scoring import (
    content_score,
    is_acceptable,
    is_hard_reject,
    is_likely_kicker,
    score,
    style_score,
    tag_score,
)
from headline_neutralizer.core.settings import NeutralizerSettings
from headline_neutralizer.core.text import (
    has_punct,
    is_all_capsish,
    lower_ratio,
    normalize,
    within_len,
    words,
)


class TestText:
    """Test normalization helpers"""

    def test_normalize_collapses_whitespace(self):
        """Test whitespace normalization"""
        assert normalize("  a   b  ") == "a b"
        assert normalize("line\n\tbreak") == "line break"
        assert normalize(None) == ""

    def test_within_len_boundaries(self):
        """Test length bounds are inclusive"""
        assert within_len("x" * 8, 8, 180)
        assert not within_len("x" * 7, 8, 180)
        assert within_len("x" * 180, 8, 180)
        assert not within_len("x" * 181, 8, 180)

    def test_words_and_punctuation(self):
        """Test word splitting and punctuation checks"""
        assert words(" one  two three ") == ["one", "two", "three"]
        assert has_punct("Rates rise: what next")
        assert not has_punct("Rates rise again")

    def test_caps_detection(self):
        """Test all-caps and lowercase ratio helpers"""
        assert is_all_capsish("BREAKING")
        assert is_all_capsish("ΕΚΤΑΚΤΟ")
        assert not is_all_capsish("Breaking news")
        assert not is_all_capsish("A")
        assert lower_ratio("SHOUT") == 0.0
        assert lower_ratio("123") == 0.0


class TestScoring:
    """Test the scorer"""

    def setup_method(self):
        self.settings = NeutralizerSettings()

    def test_tag_scores(self):
        """Test tag based scores"""
        assert tag_score(Node(tag="h1")) == 100
        assert tag_score(Node(tag="H2")) == 90
        assert tag_score(Node(tag="div", attrs={"role": "heading"})) == 75
        assert tag_score(Node(tag="span", attrs={"itemprop": "headline"})) == 85
        assert tag_score(Node(tag="div")) == 50

    def test_style_score(self):
        """Test font size and weight scores"""
        assert style_score(Node(tag="h1", font_size=24, font_weight=700)) == 36
        assert style_score(Node(tag="p", font_size=12)) == -30
        assert style_score(Node(tag="p", font_size=50)) == 40
        assert style_score(Node(tag="p", font_weight=500)) == 4

    def test_content_score(self):
        """Test word count, punctuation and digit scores"""
        assert content_score("Too short", self.settings) == -40
        assert content_score(" ".join(["word"] * 36), self.settings) == -20
        assert content_score('Rates rise 2% in "surprise" move: analysts', self.settings) == 14

    def test_card_headline_is_accepted(self):
        """Test the full score of a card headline"""
        text = 'Company reports 25% growth in Q3: "Best quarter ever"'
        heading = Node(tag="h1", text=text, font_size=24, font_weight=700)
        Node(tag="article", children=[heading])

        assert score(heading, text, self.settings) == 160
        assert is_acceptable(heading, text, self.settings)

    def test_breaking_is_kicker_for_any_tag(self):
        """Test that BREAKING style labels are kickers"""
        for tag in ("h1", "h2", "a", "div"):
            node = Node(tag=tag, text="BREAKING", font_size=32, font_weight=700)
            assert is_likely_kicker(node, "BREAKING", self.settings)
            assert not is_acceptable(node, "BREAKING", self.settings)

    def test_label_like_class_is_kicker(self):
        """Test kicker detection from class names"""
        node = Node(tag="span", attrs={"class": "story-eyebrow"})
        assert is_likely_kicker(node, "Markets close higher today.", self.settings)

    def test_caps_kicker_needs_strict_mode(self):
        """Test that all-caps kickers need strict mode"""
        relaxed = NeutralizerSettings(kicker_filter_strict=False)
        node = Node(tag="h2")
        assert not is_likely_kicker(node, "TOP STORY", relaxed)

    def test_hard_rejects(self):
        """Test links and labels that are never headlines"""
        assert is_hard_reject(Node(tag="a", attrs={"href": "#comments"}), "Jump to the discussion below")
        assert is_hard_reject(Node(tag="a", attrs={"href": "/story/1#c"}), "Anything at all here")
        assert is_hard_reject(Node(tag="span"), "Share this story")
        assert is_hard_reject(Node(tag="h3"), "Opinion")

        byline = Node(tag="span", text="Written by staff at the desk")
        Node(tag="div", attrs={"class": "byline"}, children=[byline])
        assert is_hard_reject(byline, "Written by staff at the desk")

        assert not is_hard_reject(Node(tag="h2"), "Parliament approves new budget after long debate")

    def test_short_link_penalty(self):
        """Test the penalty for short links"""
        link = Node(tag="a", attrs={"href": "/world"})
        plain = Node(tag="span")
        text = "World news today"
        assert score(plain, text, self.settings) == 50
        assert score(link, text, self.settings) == 60 - 24
