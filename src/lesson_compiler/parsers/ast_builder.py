"""Markdown → AST conversion.

Runs the pre-processor, hands the rewritten text to the Markdown grammar and
converts the top-level generic nodes into typed AST blocks, re-expanding
transition and directive placeholders on the way.
"""

import json
import logging
import re
from typing import List, Optional, Tuple

import yaml

from lesson_compiler.models.ast import (
    AstBlock,
    AstDocument,
    DirectiveBlock,
    Frontmatter,
    HeadingBlock,
    ImageBlock,
    LatexDisplayBlock,
    ListBlock,
    ParagraphBlock,
    SectionBreakBlock,
    StepBreakBlock,
    TransitionBlock,
)
from lesson_compiler.models.diagnostics import Diagnostics, ErrorCode, SourceRange, WarningCode
from lesson_compiler.parsers.directive_body import parse_directive_body
from lesson_compiler.parsers.grammar import GenericNode, MarkdownGrammar, MarkdownItGrammar
from lesson_compiler.parsers.preprocessor import ExtractedDirective, PreprocessResult, preprocess
from lesson_compiler.utils.text import LineIndex, normalize_newlines

logger = logging.getLogger(__name__)

LATEX_DISPLAY_RE = re.compile(r"^\$\$([\s\S]+)\$\$$")
LATEX_LABEL_RE = re.compile(r"^\[([^\]]+)\]\s*([\s\S]+)$")

# Directives whose body is itself Markdown, split into steps by ``>>>``.
SEQUENCE_DIRECTIVES = {"sequence", "sequenza"}

_INLINE_TYPES = {"text", "inlineCode", "strong", "emphasis", "link", "image", "break"}


# ============================================================================
# Text Flattening
# ============================================================================


def format_inline(node: GenericNode) -> str:
    """Render an inline node back to a Markdown-ish string."""
    if node.type == "text":
        return node.value or ""
    if node.type == "inlineCode":
        return f"`{node.value or ''}`"
    if node.type == "break":
        return "\n"
    if node.type == "strong":
        return f"**{extract_text(node)}**"
    if node.type == "emphasis":
        return f"*{extract_text(node)}*"
    if node.type == "link":
        return f"[{extract_text(node)}]({node.url or ''})"
    if node.type == "image":
        return f"![{node.alt or ''}]({node.url or ''})"
    return extract_text(node)


def extract_text(node: GenericNode) -> str:
    """Flatten a node to text.

    Inline children are concatenated; block children (list items, quotes,
    nested lists) are joined with newlines, which is how nested lists end up
    as a single string per item.
    """
    if not node.children:
        if node.type == "image":
            return format_inline(node)
        return node.value or ""
    if all(child.type in _INLINE_TYPES for child in node.children):
        return "".join(format_inline(child) for child in node.children)
    return "\n".join(extract_text(child) for child in node.children)


# ============================================================================
# AST Builder
# ============================================================================


class AstBuilder:
    """Converts pre-processed Markdown into an ``AstDocument``.

    One builder serves one compilation: diagnostics are appended to the
    collector it was created with.
    """

    def __init__(
        self,
        diagnostics: Diagnostics,
        grammar: Optional[MarkdownGrammar] = None,
    ):
        self.diagnostics = diagnostics
        self.grammar = grammar or MarkdownItGrammar()

    def parse(self, source: str) -> AstDocument:
        """Pre-process ``source`` and build its AST."""
        source = normalize_newlines(source)
        return self.build(preprocess(source), source)

    def build(self, pre: PreprocessResult, source: str) -> AstDocument:
        """Build the AST from a pre-processed document.

        Args:
            pre: Output of ``preprocess(source)``
            source: The original text, used for source locations

        Returns:
            AstDocument with the frontmatter (None if absent or invalid) and
            the top-level blocks in document order
        """
        index = LineIndex(source)
        for directive in pre.unterminated:
            self.diagnostics.warning(
                WarningCode.CONTENT_DROPPED,
                f"Directive ':::{directive.name}' is never closed and is kept as plain text",
                index.span(directive.line),
                help="Close the directive with a line containing only ':::'",
            )

        tree = self.grammar.parse(pre.text)
        frontmatter, blocks = self._convert_nodes(tree.children, pre, index, nested=False)
        logger.debug(
            f"Built AST with {len(blocks)} blocks",
            extra={"block_count": len(blocks), "has_frontmatter": frontmatter is not None},
        )
        return AstDocument(frontmatter=frontmatter, blocks=blocks)

    # ------------------------------------------------------------------
    # Node conversion
    # ------------------------------------------------------------------

    def _location(
        self, node: GenericNode, pre: PreprocessResult, index: LineIndex
    ) -> Optional[SourceRange]:
        if node.position is None:
            return None
        start, end = node.position
        return index.span(pre.original_line(start), pre.original_line(max(end - 1, start)))

    def _convert_nodes(
        self,
        nodes: List[GenericNode],
        pre: PreprocessResult,
        index: LineIndex,
        nested: bool,
    ) -> Tuple[Optional[Frontmatter], List[AstBlock]]:
        frontmatter: Optional[Frontmatter] = None
        blocks: List[AstBlock] = []

        for node in nodes:
            location = self._location(node, pre, index)

            if node.type == "yaml" and not nested:
                frontmatter = self._parse_frontmatter(node, location)
            elif node.type == "heading":
                blocks.append(
                    HeadingBlock(depth=node.depth, text=extract_text(node).strip(), location=location)
                )
            elif node.type == "paragraph":
                blocks.append(self._convert_paragraph(node, pre, index, location, nested))
            elif node.type == "list":
                blocks.append(
                    ListBlock(
                        ordered=bool(node.ordered),
                        items=[extract_text(item).strip() for item in node.children],
                        location=location,
                    )
                )
            elif node.type == "image":
                blocks.append(ImageBlock(src=node.url or "", alt=node.alt or "", location=location))
            elif node.type == "thematicBreak":
                blocks.append(SectionBreakBlock(location=location))
            elif node.type == "code":
                blocks.append(
                    DirectiveBlock(
                        name="code",
                        attributes={"lang": node.lang or "text"},
                        content=node.value or "",
                        raw_content=node.value or "",
                        location=location,
                    )
                )
            elif node.type == "table":
                blocks.append(self._convert_table(node, location))
            elif node.type == "blockquote":
                blocks.append(self._convert_blockquote(node, location))
            else:
                kind = node.value if node.type == "unsupported" else node.type
                logger.info(f"Dropping unsupported Markdown block '{kind}'")
                self.diagnostics.warning(
                    WarningCode.CONTENT_DROPPED,
                    f"Unsupported Markdown block '{kind}' was dropped",
                    location,
                )

        return frontmatter, blocks

    def _parse_frontmatter(
        self, node: GenericNode, location: Optional[SourceRange]
    ) -> Optional[Frontmatter]:
        try:
            data = yaml.safe_load(node.value or "")
        except yaml.YAMLError as e:
            self.diagnostics.error(
                ErrorCode.INVALID_FRONTMATTER,
                f"Invalid YAML: {e}",
                location,
                help="Check quoting and indentation of the frontmatter block",
            )
            return None

        if data is None:
            data = {}
        if not isinstance(data, dict):
            self.diagnostics.error(
                ErrorCode.INVALID_FRONTMATTER,
                f"Invalid YAML: frontmatter must be a mapping, got {type(data).__name__}",
                location,
            )
            return None
        return Frontmatter(data={str(key): value for key, value in data.items()}, location=location)

    def _convert_paragraph(
        self,
        node: GenericNode,
        pre: PreprocessResult,
        index: LineIndex,
        location: Optional[SourceRange],
        nested: bool,
    ) -> AstBlock:
        text = extract_text(node).strip()

        if text in pre.transitions or text == ">>>":
            return StepBreakBlock(location=location) if nested else TransitionBlock(location=location)

        directive = pre.directives.get(text)
        if directive is not None:
            return self._convert_directive(directive, index)

        latex = LATEX_DISPLAY_RE.match(text)
        if latex:
            body = latex.group(1).strip()
            label = LATEX_LABEL_RE.match(body)
            if label:
                return LatexDisplayBlock(
                    latex=label.group(2).strip(), label=label.group(1), location=location
                )
            return LatexDisplayBlock(latex=body, location=location)

        return ParagraphBlock(content=text, location=location)

    def _convert_directive(self, directive: ExtractedDirective, index: LineIndex) -> DirectiveBlock:
        body = parse_directive_body(directive.content)
        attributes = dict(body.attrs)
        if directive.variant:
            attributes["variant"] = directive.variant

        children = None
        if directive.name in SEQUENCE_DIRECTIVES:
            # Content is a trimmed tail of the raw body, after any attribute lines
            raw = directive.raw_content
            start = raw.rfind(body.content) if body.content else len(raw)
            first_line = directive.line + 1 + raw[:start].count("\n")
            nested = preprocess(body.content, first_line=first_line)
            tree = self.grammar.parse(nested.text)
            _, children = self._convert_nodes(tree.children, nested, index, nested=True)

        return DirectiveBlock(
            name=directive.name,
            attributes=attributes,
            content=body.content,
            raw_content=directive.raw_content,
            children=children,
            location=index.span(directive.line, directive.end_line),
        )

    def _convert_table(self, node: GenericNode, location: Optional[SourceRange]) -> DirectiveBlock:
        header: List[str] = []
        rows: List[List[str]] = []
        for row in node.children:
            cells = [extract_text(cell).strip() for cell in row.children]
            if not header:
                header = cells
            else:
                rows.append(cells)
        content = json.dumps({"header": header, "rows": rows}, ensure_ascii=False)
        return DirectiveBlock(name="table", content=content, raw_content=content, location=location)

    def _convert_blockquote(
        self, node: GenericNode, location: Optional[SourceRange]
    ) -> AstBlock:
        text = extract_text(node).strip()
        if text in ("", ">", ">>"):
            return TransitionBlock(location=location)
        return DirectiveBlock(name="quote", content=text, raw_content=text, location=location)
