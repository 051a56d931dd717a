"""Generic Markdown grammar behind a narrow interface.

The AST builder only ever sees ``GenericNode`` trees, so any CommonMark
implementation can be plugged in by subclassing ``MarkdownGrammar``. The
default implementation wraps markdown-it-py.

Node types produced:
    block:  root, yaml, heading, paragraph, list, listItem, image, table,
            tableRow, tableCell, code, blockquote, thematicBreak, unsupported
    inline: text, inlineCode, strong, emphasis, link, image, break
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from markdown_it import MarkdownIt
from markdown_it.tree import SyntaxTreeNode
from mdit_py_plugins.front_matter import front_matter_plugin

logger = logging.getLogger(__name__)


@dataclass
class GenericNode:
    """Grammar-agnostic node.

    ``position`` holds 0-based (start_line, end_line_exclusive) in the text
    handed to ``parse``; inline nodes carry none.
    """

    type: str
    children: List["GenericNode"] = field(default_factory=list)
    value: Optional[str] = None
    depth: Optional[int] = None
    ordered: Optional[bool] = None
    url: Optional[str] = None
    alt: Optional[str] = None
    lang: Optional[str] = None
    position: Optional[Tuple[int, int]] = None


class MarkdownGrammar(ABC):
    """Capability interface: Markdown text in, ``GenericNode`` tree out."""

    @abstractmethod
    def parse(self, text: str) -> GenericNode:
        """Parse ``text`` into a tree rooted at a ``root`` node.

        Args:
            text: Pre-processed Markdown

        Returns:
            Root node whose children are the top-level blocks
        """
        pass


class MarkdownItGrammar(MarkdownGrammar):
    """CommonMark + GFM tables + YAML front matter via markdown-it-py."""

    _BLOCK_TYPES = {
        "heading": "heading",
        "paragraph": "paragraph",
        "bullet_list": "list",
        "ordered_list": "list",
        "list_item": "listItem",
        "blockquote": "blockquote",
        "table": "table",
        "tr": "tableRow",
        "th": "tableCell",
        "td": "tableCell",
        "hr": "thematicBreak",
        "fence": "code",
        "code_block": "code",
        "front_matter": "yaml",
    }

    _INLINE_TYPES = {
        "text": "text",
        "code_inline": "inlineCode",
        "strong": "strong",
        "em": "emphasis",
        "link": "link",
        "image": "image",
        "softbreak": "break",
        "hardbreak": "break",
    }

    def __init__(self) -> None:
        self.md = MarkdownIt("commonmark").enable("table").use(front_matter_plugin)

    def parse(self, text: str) -> GenericNode:
        tokens = self.md.parse(text)
        tree = SyntaxTreeNode(tokens)
        root = GenericNode(type="root")
        for child in tree.children:
            root.children.append(self._convert_block(child))
        logger.debug(f"Grammar produced {len(root.children)} top-level nodes")
        return root

    # ------------------------------------------------------------------
    # Block level
    # ------------------------------------------------------------------

    def _convert_block(self, node: SyntaxTreeNode) -> GenericNode:
        position = tuple(node.map) if node.map else None
        kind = self._BLOCK_TYPES.get(node.type)

        if kind is None:
            return GenericNode(type="unsupported", value=node.type, position=position)

        if kind == "heading":
            return GenericNode(
                type="heading",
                depth=int(node.tag[1]),
                children=self._inline_children(node),
                position=position,
            )

        if kind == "paragraph":
            inline = self._inline_children(node)
            meaningful = [
                child for child in inline
                if not (child.type == "text" and not (child.value or "").strip())
            ]
            if len(meaningful) == 1 and meaningful[0].type == "image":
                image = meaningful[0]
                image.position = position
                return image
            return GenericNode(type="paragraph", children=inline, position=position)

        if kind == "list":
            return GenericNode(
                type="list",
                ordered=node.type == "ordered_list",
                children=[self._convert_block(child) for child in node.children],
                position=position,
            )

        if kind == "table":
            rows: List[GenericNode] = []
            for section in node.children:  # thead / tbody
                for row in section.children:
                    rows.append(self._convert_block(row))
            return GenericNode(type="table", children=rows, position=position)

        if kind == "tableCell":
            return GenericNode(type="tableCell", children=self._inline_children(node))

        if kind == "code":
            info = (node.info or "").strip() if node.type == "fence" else ""
            return GenericNode(
                type="code",
                value=node.content[:-1] if node.content.endswith("\n") else node.content,
                lang=info.split()[0] if info else None,
                position=position,
            )

        if kind == "yaml":
            return GenericNode(type="yaml", value=node.content, position=position)

        if kind == "thematicBreak":
            return GenericNode(type="thematicBreak", position=position)

        # listItem, blockquote, tableRow: plain containers
        return GenericNode(
            type=kind,
            children=[self._convert_block(child) for child in node.children],
            position=position,
        )

    # ------------------------------------------------------------------
    # Inline level
    # ------------------------------------------------------------------

    def _inline_children(self, node: SyntaxTreeNode) -> List[GenericNode]:
        result: List[GenericNode] = []
        for child in node.children:
            if child.type == "inline":
                result.extend(self._convert_inline(grandchild) for grandchild in child.children)
            else:
                result.append(self._convert_inline(child))
        return result

    def _convert_inline(self, node: SyntaxTreeNode) -> GenericNode:
        kind = self._INLINE_TYPES.get(node.type, "text")

        if kind in ("text", "inlineCode"):
            return GenericNode(type=kind, value=node.content)
        if kind == "break":
            return GenericNode(type="break", value="\n")
        if kind == "link":
            return GenericNode(
                type="link",
                url=str(node.attrs.get("href", "")),
                children=[self._convert_inline(child) for child in node.children],
            )
        if kind == "image":
            return GenericNode(
                type="image",
                url=str(node.attrs.get("src", "")),
                alt=node.content,
            )
        return GenericNode(
            type=kind,
            children=[self._convert_inline(child) for child in node.children],
        )
