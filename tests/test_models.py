"""
Test for data models
"""
from headline_neutralizer.core.models import (
    CHANGED_ATTR,
    Candidate,
    ChangeRecord,
    Document,
    LongTextItem,
    Node,
)


class TestNode:
    """Test Node"""

    def test_node_creation(self):
        """Test creating a node with attributes and children"""
        link = Node(tag="A", text="Read more about the vote", attrs={"href": "/vote"})
        heading = Node(tag="h2", attrs={"class": "title main", "id": "lead"}, children=[link])

        assert heading.tag == "h2"
        assert link.tag == "a"
        assert heading.classes == ["title", "main"]
        assert heading.node_id == "lead"
        assert link.parent is heading
        assert link.get("href") == "/vote"
        assert str(heading) == "<h2#lead.title.main handle=0>"

    def test_text_and_text_content(self):
        """Test own text against text of the whole subtree"""
        heading = Node(
            tag="h2",
            text="  Storm ",
            children=[Node(tag="span", text="closes schools"), Node(tag="b", text="today")],
        )
        assert heading.text == "Storm"
        assert heading.text_content == "Storm closes schools today"

    def test_element_mirrors_the_tree(self):
        """Test that the BeautifulSoup element follows node changes"""
        span = Node(tag="span", text="Live")
        heading = Node(tag="h2", text="Storm", children=[span])
        heading.attrs[CHANGED_ATTR] = "1"

        assert str(heading.element) == '<h2 data-neutralizer-changed="1">Storm<span>Live</span></h2>'

        heading.set_text("Calm")
        assert heading.children == []
        assert span.parent is None
        assert str(heading.element) == '<h2 data-neutralizer-changed="1">Calm</h2>'

    def test_closest(self):
        """Test finding the nearest matching ancestor"""
        leaf = Node(tag="a")
        card = Node(tag="article", children=[Node(tag="div", children=[leaf])])
        assert leaf.closest(lambda node: node.tag == "article") is card
        assert leaf.closest(lambda node: node.tag == "a") is leaf
        assert leaf.closest(lambda node: node.tag == "nav") is None


class TestDocument:
    """Test Document"""

    def test_register_assigns_handles(self):
        """Test that every node gets a distinct handle"""
        heading = Node(tag="h1")
        document = Document(Node(tag="body", children=[heading]))

        assert len(document) == 2
        assert heading.handle and heading.handle != document.root.handle
        assert heading in document
        assert Node(tag="h1") not in document

    def test_adopt_and_release(self):
        """Test adding and removing subtrees"""
        document = Document()
        section = Node(tag="section", children=[Node(tag="h2", text="Added later")])

        document.adopt(document.root, section)
        assert len(document) == 3
        assert "Added later" in document.to_html()

        document.release(section)
        assert section not in document
        assert section.parent is None
        assert document.root.children == []
        assert document.to_html() == "<body></body>"

    def test_iter_nodes_document_order(self):
        """Test depth-first iteration from the root or a subtree"""
        first = Node(tag="h1")
        inner = Node(tag="p")
        second = Node(tag="div", children=[inner])
        document = Document(Node(tag="body", children=[first, second]))

        assert list(document.iter_nodes()) == [document.root, first, second, inner]
        assert list(document.iter_nodes(second)) == [second, inner]


class TestRecords:
    """Test Candidate, ChangeRecord and LongTextItem"""

    def test_candidate_str(self):
        """Test the candidate line used in dry runs"""
        candidate = Candidate(node=Node(tag="h2"), text="Markets tumble", score=123.4)
        assert str(candidate) == "[auto 123] Markets tumble"

    def test_change_record_str(self):
        """Test the change record summary line"""
        record = ChangeRecord(original="Loud!!!", rewritten="Quiet", applied_count=2, source="cache", mode="manual")
        assert str(record) == '[cache] (manual) "Loud!!!" -> "Quiet" on 2 element(s)'

    def test_long_text_length(self):
        """Test the length reported for long manual matches"""
        assert LongTextItem(node=Node(tag="div"), text="x" * 600).length == 600
