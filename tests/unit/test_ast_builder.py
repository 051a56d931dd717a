"""Unit tests for the AST builder."""

import json

import pytest

from lesson_compiler.models.ast import (
    DirectiveBlock,
    HeadingBlock,
    ImageBlock,
    LatexDisplayBlock,
    ListBlock,
    ParagraphBlock,
    SectionBreakBlock,
    StepBreakBlock,
    TransitionBlock,
)
from lesson_compiler.models.diagnostics import Diagnostics
from lesson_compiler.parsers.ast_builder import AstBuilder


@pytest.fixture
def diagnostics():
    return Diagnostics()


def parse(source, diagnostics=None):
    return AstBuilder(diagnostics or Diagnostics()).parse(source)


class TestBlockConversion:
    """Tests for Markdown block → AST block mapping."""

    def test_heading_keeps_inline_markup(self):
        """Test heading depth and flattened text."""
        blocks = parse("# Titolo **forte**").blocks
        assert blocks == [HeadingBlock(depth=1, text="Titolo **forte**", location=blocks[0].location)]

    def test_paragraph_inline_flattening(self):
        """Test inline code, links and emphasis rendering."""
        block = parse("Vedi `x`, *qui* e [la guida](http://esempio.it).").blocks[0]
        assert isinstance(block, ParagraphBlock)
        assert block.content == "Vedi `x`, *qui* e [la guida](http://esempio.it)."

    def test_latex_display_with_label(self):
        """Test $$...$$ paragraphs with an optional [label]."""
        blocks = parse("$$[eq:1] E = m c^2$$\n\n$$a + b$$").blocks
        assert blocks[0] == LatexDisplayBlock(latex="E = m c^2", label="eq:1", location=blocks[0].location)
        assert blocks[1].latex == "a + b"
        assert blocks[1].label is None

    def test_nested_list_items_are_flattened(self):
        """Test one string per top-level item, nested content joined by newlines."""
        block = parse("- uno\n  - due\n- tre").blocks[0]
        assert isinstance(block, ListBlock)
        assert block.ordered is False
        assert block.items == ["uno\ndue", "tre"]

    def test_ordered_list(self):
        block = parse("1. primo\n2. secondo").blocks[0]
        assert block.ordered is True
        assert block.items == ["primo", "secondo"]

    def test_image_paragraph(self):
        """Test that a paragraph holding only an image becomes an image block."""
        block = parse("![Un grafico](img/grafico.png)").blocks[0]
        assert isinstance(block, ImageBlock)
        assert block.src == "img/grafico.png"
        assert block.alt == "Un grafico"

    def test_thematic_break_is_section_break(self):
        blocks = parse("Testo\n\n---\n\nAltro").blocks
        assert isinstance(blocks[1], SectionBreakBlock)

    def test_code_fence_becomes_code_directive(self):
        """Test fenced code mapping, with and without a language."""
        blocks = parse("```python\nprint(1)\n```\n\n```\nplain\n```").blocks
        assert blocks[0].name == "code"
        assert blocks[0].attributes == {"lang": "python"}
        assert blocks[0].content == "print(1)"
        assert blocks[1].attributes == {"lang": "text"}

    def test_table_becomes_table_directive(self):
        """Test that tables carry their cells as JSON."""
        block = parse("| a | b |\n|---|---|\n| 1 | 2 |").blocks[0]
        assert isinstance(block, DirectiveBlock)
        assert block.name == "table"
        assert json.loads(block.content) == {"header": ["a", "b"], "rows": [["1", "2"]]}

    def test_blockquote(self):
        """Test quotes, and empty quote markers used as transitions."""
        blocks = parse("> Il moto è relativo.\n\n>\n\nTesto").blocks
        assert blocks[0].name == "quote"
        assert blocks[0].content == "Il moto è relativo."
        assert isinstance(blocks[1], TransitionBlock)

    def test_transition(self):
        blocks = parse("Uno\n\n>>>\n\nDue").blocks
        assert [b.type for b in blocks] == ["paragraph", "transition", "paragraph"]


class TestDirectives:
    """Tests for directive re-expansion."""

    def test_directive_with_variant(self):
        """Test name, variant attribute and content."""
        block = parse(":::note tip\nRicorda le unità!\n:::").blocks[0]
        assert isinstance(block, DirectiveBlock)
        assert block.name == "note"
        assert block.attributes == {"variant": "tip"}
        assert block.content == "Ricorda le unità!"

    def test_variant_from_body(self):
        """Test that a variant key in the body is used when the fence has none."""
        block = parse(":::note\nvariant: ricorda\n\nTesto\n:::").blocks[0]
        assert block.attributes["variant"] == "ricorda"

    def test_directive_location(self):
        """Test that directive ranges cover the fences in source coordinates."""
        block = parse("Testo\n\n:::note\nCorpo\n:::").blocks[1]
        assert block.location.start.line == 3
        assert block.location.end.line == 5

    def test_location_after_transition(self):
        """Test that placeholders do not shift later line numbers."""
        blocks = parse("a\n\n>>>\n\n# Titolo").blocks
        assert blocks[-1].location.start.line == 5
        assert blocks[-1].location.start.offset == len("a\n\n>>>\n\n")

    def test_sequence_children(self):
        """Test that sequence bodies are parsed into blocks with step breaks."""
        block = parse(":::sequence\ntitle: Procedura\n\nPasso uno\n>>>\nPasso due\n:::").blocks[0]
        assert block.attributes == {"title": "Procedura"}
        assert [child.type for child in block.children] == ["paragraph", "step-break", "paragraph"]
        assert isinstance(block.children[1], StepBreakBlock)
        assert block.children[0].content == "Passo uno"
        assert block.children[0].location.start.line == 4

    def test_plain_directive_has_no_children(self):
        block = parse(":::note\nx\n:::").blocks[0]
        assert block.children is None


class TestFrontmatter:
    """Tests for the YAML frontmatter."""

    def test_frontmatter_parsed(self, diagnostics):
        document = parse("---\nid: moto\ntags: [a, b]\n---\n\n# Sezione", diagnostics)
        assert document.frontmatter.data == {"id": "moto", "tags": ["a", "b"]}
        assert isinstance(document.blocks[0], HeadingBlock)
        assert diagnostics.errors == []

    def test_missing_frontmatter(self):
        assert parse("# Sezione").frontmatter is None

    def test_invalid_yaml(self, diagnostics):
        """Test that unparsable YAML is a single E008 at the frontmatter start."""
        document = parse("---\ntitle: [aperta\n---\n\nTesto", diagnostics)
        assert document.frontmatter is None
        assert [e.code for e in diagnostics.errors] == ["E008"]
        assert diagnostics.errors[0].message.startswith("Invalid YAML")
        assert diagnostics.errors[0].location.start.line == 1

    def test_non_mapping_frontmatter(self, diagnostics):
        parse("---\n- a\n- b\n---\n", diagnostics)
        assert [e.code for e in diagnostics.errors] == ["E008"]


class TestDroppedContent:
    """Tests for content that cannot be represented."""

    def test_unterminated_directive_warns(self, diagnostics):
        document = parse("Testo\n\n:::quiz\nQuanto fa 2+2?", diagnostics)
        assert [w.code for w in diagnostics.warnings] == ["W005"]
        assert diagnostics.warnings[0].location.start.line == 3
        assert all(b.type == "paragraph" for b in document.blocks)

    def test_unsupported_block_warns(self, diagnostics):
        """Test that raw HTML blocks are dropped with a warning."""
        document = parse("<div>\nciao\n</div>\n\nTesto", diagnostics)
        assert [b.type for b in document.blocks] == ["paragraph"]
        assert [w.code for w in diagnostics.warnings] == ["W005"]
        assert "html_block" in diagnostics.warnings[0].message
