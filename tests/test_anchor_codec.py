"""Unit tests for AnchorCodec."""

from pagenotes.dom import HtmlDocument, TextRange
from pagenotes.models.anchor import PathStep
from pagenotes.services.anchor_codec import AnchorCodec


class TestComputePath:
    """Test cases for AnchorCodec.compute_path()."""

    def test_path_counts_same_tag_siblings(self, guide_document):
        """Test each step's index counts preceding same-tag siblings only."""
        paragraph = guide_document.soup.find_all("p")[1]
        path = AnchorCodec().compute_path(paragraph)
        assert path == (
            PathStep("html", 0),
            PathStep("body", 0),
            PathStep("div", 0),
            PathStep("p", 1),
        )

    def test_text_node_uses_parent_element(self, guide_document):
        """Test a text node is addressed through its parent."""
        bold = guide_document.soup.b
        path = AnchorCodec().compute_path(bold.string)
        assert path[-1] == PathStep("b", 0)
        assert path[-2] == PathStep("p", 2)

    def test_path_is_deterministic(self, guide_document):
        """Test computing a path twice yields the same result."""
        codec = AnchorCodec()
        paragraph = guide_document.soup.find_all("p")[2]
        assert codec.compute_path(paragraph) == codec.compute_path(paragraph)

    def test_path_resolves_back_to_element(self, guide_document):
        """Test the path leads back to the element it was computed for."""
        paragraph = guide_document.soup.find_all("p")[2]
        path = AnchorCodec().compute_path(paragraph)
        assert guide_document.element_at(path) is paragraph

    def test_fragment_without_html_element(self):
        """Test paths start at the outermost element of a fragment."""
        document = HtmlDocument("<section><p>a</p><p>b</p></section>")
        path = AnchorCodec().compute_path(document.soup.find_all("p")[1])
        assert path == (PathStep("section", 0), PathStep("p", 1))

    def test_xpath_rendering(self):
        """Test to_xpath() shows 1-based positions only after the first."""
        path = (PathStep("html", 0), PathStep("body", 0), PathStep("div", 1))
        assert PathStep.to_xpath(path) == "/html/body/div[2]"


class TestComputeContext:
    """Test cases for AnchorCodec.compute_context()."""

    def test_context_clipped_at_node_start(self):
        """Test the context stops at the beginning of the text."""
        document = HtmlDocument("<p>short text here</p>")
        context = AnchorCodec().compute_context(document.soup.p.string, 3)
        assert context == "short text here"

    def test_context_radius(self):
        """Test the context spans the radius on each side."""
        text = "a" * 30 + "X" + "b" * 30
        document = HtmlDocument(f"<p>{text}</p>")
        context = AnchorCodec().compute_context(document.soup.p.string, 30)
        assert context == "a" * 20 + "X" + "b" * 19

    def test_custom_radius(self):
        """Test a smaller radius captures fewer characters."""
        document = HtmlDocument("<p>0123456789</p>")
        context = AnchorCodec(context_radius=2).compute_context(
            document.soup.p.string, 5
        )
        assert context == "3456"

    def test_context_of_element_is_empty(self):
        """Test non-text nodes have no context."""
        document = HtmlDocument("<p>text</p>")
        assert AnchorCodec().compute_context(document.soup.p, 0) == ""


class TestEncode:
    """Test cases for AnchorCodec.encode()."""

    def test_encodes_selection(self, guide_document):
        """Test encoding a selection within one text node."""
        text_range = guide_document.select_text("hello world")
        descriptor = AnchorCodec().encode(text_range)
        assert descriptor is not None
        assert descriptor.start_path == descriptor.end_path
        assert descriptor.start_path[-1] == PathStep("p", 1)
        assert descriptor.start_offset == 11
        assert descriptor.end_offset == 22
        assert "hello world" in descriptor.start_context
        assert "appears" in descriptor.end_context

    def test_encodes_selection_across_elements(self, guide_document):
        """Test start and end paths differ for a multi-element selection."""
        paragraph = guide_document.soup.find_all("p")[2]
        first, _, last = paragraph.contents
        descriptor = AnchorCodec().encode(TextRange(first, 9, last, 7))
        assert descriptor.start_path[-1] == PathStep("p", 2)
        assert descriptor.end_path[-1] == PathStep("p", 2)
        assert descriptor.start_offset == 9
        assert descriptor.end_offset == 7

    def test_collapsed_range_is_not_encoded(self, guide_document):
        """Test a collapsed range yields None."""
        node = guide_document.soup.h1.string
        assert AnchorCodec().encode(TextRange(node, 2, node, 2)) is None

    def test_whitespace_range_is_not_encoded(self):
        """Test a whitespace-only range yields None."""
        document = HtmlDocument("<p>a   b</p>")
        node = document.soup.p.string
        assert AnchorCodec().encode(TextRange(node, 1, node, 4)) is None

    def test_missing_range_is_not_encoded(self):
        """Test None yields None."""
        assert AnchorCodec().encode(None) is None

    def test_offsets_exclude_edge_whitespace(self):
        """Test the encoded offsets bound the trimmed text, not the selection."""
        document = HtmlDocument("<p>say hello world now</p>")
        node = document.soup.p.string
        descriptor = AnchorCodec().encode(TextRange(node, 3, node, 16))
        assert descriptor.start_offset == 4
        assert descriptor.end_offset == 15

    def test_selection_inside_highlight(self):
        """Test a boundary inside a highlight is measured as if it were gone."""
        document = HtmlDocument(
            '<p>alpha <span class="note-highlight-active">beta gamma</span> delta</p>'
        )
        node = document.soup.span.string
        descriptor = AnchorCodec().encode(TextRange(node, 5, node, 10))
        assert descriptor.start_path == (PathStep("p", 0),)
        assert descriptor.end_path == (PathStep("p", 0),)
        assert descriptor.start_offset == 11
        assert descriptor.end_offset == 16
        assert descriptor.start_context == "alpha beta gamma delta"

    def test_text_after_highlighted_element(self):
        """Test text merged with a highlight's tail is re-based onto the merge."""
        document = HtmlDocument(
            '<p>On<span class="note-highlight">e <b>two</b> th</span>ree</p>'
        )
        tail = document.soup.p.contents[-1]
        descriptor = AnchorCodec().encode(TextRange(tail, 0, tail, 3))
        assert descriptor.start_path == (PathStep("p", 0),)
        assert descriptor.start_offset == 3
        assert descriptor.end_offset == 6
        assert descriptor.start_context == " three"

    def test_text_without_highlight_is_unchanged(self, guide_document):
        """Test boundaries next to ordinary elements keep their own node's offsets."""
        paragraph = guide_document.soup.find_all("p")[2]
        last = paragraph.contents[-1]
        descriptor = AnchorCodec().encode(TextRange(last, 1, last, 7))
        assert descriptor.start_offset == 1
        assert descriptor.start_context == str(last)[:21]


class TestIsWrapper:
    """Test cases for AnchorCodec.is_wrapper()."""

    def test_recognizes_highlight_spans(self):
        """Test spans carrying a highlight class are wrappers."""
        document = HtmlDocument(
            '<p><span class="x note-highlight">a</span>'
            '<span class="note-highlight-active">b</span>'
            '<span class="other">c</span><b class="note-highlight">d</b></p>'
        )
        codec = AnchorCodec()
        flags = [codec.is_wrapper(tag) for tag in document.soup.p.find_all(True)]
        assert flags == [True, True, False, False]
        assert not codec.is_wrapper(document.soup.p.span.string)
        assert not codec.is_wrapper(None)

    def test_custom_classes(self):
        """Test the wrapper classes can be configured."""
        document = HtmlDocument('<p><span class="mark">a</span></p>')
        assert AnchorCodec(wrapper_classes=("mark",)).is_wrapper(document.soup.span)
        assert not AnchorCodec().is_wrapper(document.soup.span)

    def test_path_skips_wrappers(self):
        """Test elements inside a highlight keep the path they have without it."""
        document = HtmlDocument(
            '<div><b>x</b><span class="note-highlight"><b>y</b></span></div>'
        )
        inner = document.soup.span.b
        assert AnchorCodec().compute_path(inner) == (PathStep("div", 0), PathStep("b", 1))
        assert AnchorCodec().compute_path(inner.string) == (
            PathStep("div", 0),
            PathStep("b", 1),
        )
