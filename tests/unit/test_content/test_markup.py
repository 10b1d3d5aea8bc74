"""Unit tests for markup conversion."""

from llms_export.content.markup import html_to_markdown, normalize_whitespace


def convert(markup: str) -> str:
    return normalize_whitespace(html_to_markdown(markup))


class TestHtmlToMarkdown:
    """Tests for html_to_markdown."""

    def test_headings(self) -> None:
        """Test headings become hash prefixes by level."""
        assert convert("<h2>Setup</h2><p>Text</p>") == "## Setup\n\nText"
        assert convert("<h4>Deep</h4>") == "#### Deep"

    def test_paragraphs_separated_by_blank_line(self) -> None:
        """Test consecutive paragraphs are separated by one blank line."""
        assert convert("<p>One</p><p>Two</p>") == "One\n\nTwo"

    def test_line_break(self) -> None:
        """Test br becomes a newline."""
        assert convert("<p>Line one<br>Line two</p>") == "Line one\nLine two"

    def test_emphasis(self) -> None:
        """Test bold and italic markers."""
        result = convert("<p><strong>bold</strong> and <em>italic</em> and <b>b</b></p>")
        assert result == "**bold** and *italic* and **b**"

    def test_links(self) -> None:
        """Test anchors with href become Markdown links."""
        result = convert('<p>See <a href="https://example.com/x">the docs</a>.</p>')
        assert result == "See [the docs](https://example.com/x)."

    def test_anchor_without_href_keeps_text(self) -> None:
        """Test anchors without href keep only their text."""
        assert convert("<p><a name='top'>Top</a></p>") == "Top"

    def test_list_items(self) -> None:
        """Test list items become dash bullets."""
        result = convert("<ul><li>First</li><li>Second</li></ul>")
        assert result == "- First\n- Second"

    def test_scripts_and_comments_dropped(self) -> None:
        """Test script, style and comments are removed."""
        markup = "<p>Keep</p><script>alert(1)</script><style>p{}</style><!-- note -->"
        assert convert(markup) == "Keep"

    def test_unknown_tags_stripped(self) -> None:
        """Test other tags are reduced to their text."""
        assert convert("<div><span>Inside</span> <code>x</code></div>") == "Inside x"

    def test_plain_text_passthrough(self) -> None:
        """Test text without markup survives."""
        assert convert("Just some words") == "Just some words"

    def test_empty_markup(self) -> None:
        """Test empty input yields empty output."""
        assert html_to_markdown("") == ""
        assert html_to_markdown("   \n ") == ""


class TestNormalizeWhitespace:
    """Tests for normalize_whitespace."""

    def test_collapses_spaces_and_tabs(self) -> None:
        """Test runs of spaces and tabs collapse to one space."""
        assert normalize_whitespace("a  \t b\xa0\xa0c") == "a b c"

    def test_trims_lines(self) -> None:
        """Test each line is trimmed."""
        assert normalize_whitespace("  a  \n   b ") == "a\nb"

    def test_collapses_blank_lines(self) -> None:
        """Test three or more newlines collapse to one blank line."""
        assert normalize_whitespace("a\n\n\n\n\nb") == "a\n\nb"

    def test_whitespace_only_lines_count_as_blank(self) -> None:
        """Test lines holding only spaces do not keep blank runs apart."""
        assert normalize_whitespace("a\n  \n \t \n\nb") == "a\n\nb"
