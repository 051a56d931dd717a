"""Partition the flat block list into introduction, sections and conclusion.

H1 headings drive a three-mode state machine (introduction / section /
conclusion); ``---`` closes the current section; ``risorsa`` directives are
collected into a document-wide resource list wherever they appear.
"""

import logging
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from lesson_compiler.models.ast import AstBlock, DirectiveBlock, HeadingBlock
from lesson_compiler.models.diagnostics import Diagnostics, WarningCode
from lesson_compiler.models.lesson import Risorsa, TipoRisorsa
from lesson_compiler.utils.text import fold_accents, slugify

logger = logging.getLogger(__name__)

INTRODUCTION_KEYWORDS = ("introduzione", "intro")
CONCLUSION_KEYWORDS = ("conclusione", "riepilogo")
RESOURCES_KEYWORDS = ("risorse", "resources")
RESOURCE_DIRECTIVES = {"risorsa", "resource"}


class Section(BaseModel):
    id: str
    title: str
    blocks: List[AstBlock] = Field(default_factory=list)


class SegmentedDocument(BaseModel):
    introduction: List[AstBlock] = Field(default_factory=list)
    sections: List[Section] = Field(default_factory=list)
    conclusion: List[AstBlock] = Field(default_factory=list)
    resources: List[Risorsa] = Field(default_factory=list)


def classify_heading(text: str) -> Optional[str]:
    """Return "introduction", "conclusion", "resources" or None for an H1 title."""
    folded = fold_accents(text)
    if any(keyword in folded for keyword in INTRODUCTION_KEYWORDS):
        return "introduction"
    if any(keyword in folded for keyword in CONCLUSION_KEYWORDS):
        return "conclusion"
    if any(keyword in folded for keyword in RESOURCES_KEYWORDS):
        return "resources"
    return None


class Segmenter:
    """Single-pass segmenter; create one per compilation."""

    def __init__(self, diagnostics: Diagnostics):
        self.diagnostics = diagnostics
        self._used_ids: Dict[str, int] = {}

    def segment(self, blocks: List[AstBlock]) -> SegmentedDocument:
        """Route every block into exactly one part of the document.

        Args:
            blocks: Top-level AST blocks in document order

        Returns:
            SegmentedDocument; headings H1, section breaks and resource
            directives are consumed and appear nowhere else
        """
        document = SegmentedDocument()
        current: Optional[Section] = None
        in_introduction = True
        in_conclusion = False

        for block in blocks:
            if isinstance(block, HeadingBlock) and block.depth == 1:
                kind = classify_heading(block.text)
                if kind == "introduction":
                    in_introduction, in_conclusion = True, False
                    current = None
                elif kind == "conclusion":
                    in_introduction, in_conclusion = False, True
                    current = None
                elif kind == "resources":
                    continue
                else:
                    current = self._open_section(document, block.text)
                    in_introduction = in_conclusion = False
                continue

            if block.type == "section-break":
                current = None
                continue

            if isinstance(block, DirectiveBlock) and block.name in RESOURCE_DIRECTIVES:
                resource = self._build_resource(block)
                if resource is not None:
                    document.resources.append(resource)
                continue

            if in_conclusion:
                document.conclusion.append(block)
            elif in_introduction and current is None:
                document.introduction.append(block)
            elif current is not None:
                current.blocks.append(block)
            else:
                number = len(document.sections) + 1
                current = self._open_section(
                    document, f"Sezione {number}", section_id=f"sezione-{number}"
                )
                current.blocks.append(block)
                in_introduction = False

        logger.debug(
            f"Segmented {len(blocks)} blocks into {len(document.sections)} sections",
            extra={
                "introduction_blocks": len(document.introduction),
                "section_count": len(document.sections),
                "conclusion_blocks": len(document.conclusion),
                "resource_count": len(document.resources),
            },
        )
        return document

    def _open_section(
        self,
        document: SegmentedDocument,
        title: str,
        section_id: Optional[str] = None,
    ) -> Section:
        base = section_id or slugify(title) or f"sezione-{len(document.sections) + 1}"
        count = self._used_ids.get(base, 0) + 1
        self._used_ids[base] = count
        section = Section(id=base if count == 1 else f"{base}-{count}", title=title)
        document.sections.append(section)
        return section

    def _build_resource(self, block: DirectiveBlock) -> Optional[Risorsa]:
        attrs = block.attributes
        title = attrs.get("titolo") or attrs.get("title")
        if not title:
            self.diagnostics.warning(
                WarningCode.MALFORMED_DIRECTIVE,
                "Resource without 'titolo'",
                block.location,
                help="Add a line 'titolo: ...' to the risorsa directive",
            )
        try:
            return Risorsa(
                tipo=attrs.get("tipo") or attrs.get("variant") or "sito",
                titolo=str(title or ""),
                url=attrs.get("url"),
                descrizione=attrs.get("descrizione") or block.content or None,
            )
        except ValidationError as e:
            error = e.errors()[0]
            name = str(error["loc"][0]) if error["loc"] else "risorsa"
            if name == "tipo":
                help = f"'tipo' must be one of: {', '.join(t.value for t in TipoRisorsa)}"
            else:
                help = f"Write '{name}' as plain text"
            self.diagnostics.warning(
                WarningCode.MALFORMED_DIRECTIVE,
                f"Invalid resource '{name}': {error['msg']}",
                block.location,
                help=help,
            )
            return None
