"""Intermediate AST produced by the parser stage.

Blocks are frozen once created; the segmenter and compiler build new
containers around them instead of mutating them.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from lesson_compiler.models.diagnostics import SourceRange


class AstNode(BaseModel):
    """Base class for every AST node."""

    model_config = ConfigDict(frozen=True)

    location: Optional[SourceRange] = None


class Frontmatter(AstNode):
    """Key-value mapping parsed from the leading YAML block."""

    type: Literal["frontmatter"] = "frontmatter"
    data: Dict[str, Any] = Field(default_factory=dict)


class HeadingBlock(AstNode):
    type: Literal["heading"] = "heading"
    depth: int = Field(..., ge=1, le=6)
    text: str


class ParagraphBlock(AstNode):
    type: Literal["paragraph"] = "paragraph"
    content: str


class LatexDisplayBlock(AstNode):
    type: Literal["latex-display"] = "latex-display"
    latex: str
    label: Optional[str] = None


class ListBlock(AstNode):
    """Flat list: one flattened string per top-level item."""

    type: Literal["list"] = "list"
    ordered: bool = False
    items: List[str] = Field(default_factory=list)


class ImageBlock(AstNode):
    type: Literal["image"] = "image"
    src: str
    alt: str = ""


class TransitionBlock(AstNode):
    type: Literal["transition"] = "transition"


class SectionBreakBlock(AstNode):
    type: Literal["section-break"] = "section-break"


class StepBreakBlock(AstNode):
    type: Literal["step-break"] = "step-break"


class DirectiveBlock(AstNode):
    """A ``:::name variant`` block, or a code fence / table / quote mapped onto one.

    ``content`` is the residual body after attribute parsing; ``raw_content``
    keeps the untouched body for consumers that re-parse it.
    """

    type: Literal["directive"] = "directive"
    name: str
    attributes: Dict[str, Any] = Field(default_factory=dict)
    content: str = ""
    raw_content: str = ""
    children: Optional[List["AstBlock"]] = None


AstBlock = Annotated[
    Union[
        HeadingBlock,
        ParagraphBlock,
        LatexDisplayBlock,
        ListBlock,
        ImageBlock,
        TransitionBlock,
        SectionBreakBlock,
        StepBreakBlock,
        DirectiveBlock,
    ],
    Field(discriminator="type"),
]

DirectiveBlock.model_rebuild()


class AstDocument(BaseModel):
    """Output of the AST builder."""

    frontmatter: Optional[Frontmatter] = None
    blocks: List[AstBlock] = Field(default_factory=list)
