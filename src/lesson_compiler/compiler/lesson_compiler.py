"""Semantic stage: segmented AST → ``Lezione``.

Sections that contain H2 headings become a single ``sequenza`` block whose
steps are the runs between those headings. Transitions never reach the
output as blocks; they are recorded as indices into the enclosing
``blocchi`` list.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from lesson_compiler.compiler.directives import DirectiveCompiler, split_steps
from lesson_compiler.compiler.segmenter import Section, SegmentedDocument
from lesson_compiler.models.ast import (
    AstBlock,
    AstDocument,
    DirectiveBlock,
    HeadingBlock,
    ImageBlock,
    LatexDisplayBlock,
    ListBlock,
    ParagraphBlock,
)
from lesson_compiler.models.diagnostics import Diagnostics, ErrorCode, WarningCode
from lesson_compiler.models.lesson import (
    Blocco,
    BloccoElenco,
    BloccoFormula,
    BloccoImmagine,
    BloccoSequenza,
    BloccoTesto,
    BloccoTitolo,
    Lezione,
    MetadatiLezione,
    SezioneLezione,
)

logger = logging.getLogger(__name__)

# Frontmatter key → MetadatiLezione field
FRONTMATTER_FIELDS = {
    "id": "id",
    "title": "titolo",
    "subtitle": "sottotitolo",
    "subject": "materia",
    "topic": "argomento",
    "level": "livello",
    "duration": "durata",
    "author": "autore",
    "version": "versione",
    "tags": "tags",
    "prerequisites": "prerequisiti",
    "objectives": "obiettivi",
}

REQUIRED_FRONTMATTER_KEYS = ("id", "title", "subject", "topic", "level")


def heading_level(depth: int) -> int:
    """Map a Markdown heading depth (3+) to a ``titolo`` level in 2..4."""
    return min(max(depth + 1, 2), 4)


class LessonCompiler:
    """Builds the lesson document; create one per compilation."""

    def __init__(self, diagnostics: Diagnostics, strict: bool = False):
        self.diagnostics = diagnostics
        self.strict = strict
        self.directives = DirectiveCompiler(diagnostics, self.compile_blocks)

    def compile(self, ast: AstDocument, segmented: SegmentedDocument) -> Lezione:
        """Compile a segmented document into a lesson.

        Args:
            ast: The parsed document (used for its frontmatter)
            segmented: Output of the segmenter for ``ast.blocks``

        Returns:
            Lezione; ``introduzione`` and ``conclusione`` are omitted when empty
        """
        metadata = self.compile_metadata(ast)
        sections = [self.compile_section(section) for section in segmented.sections]

        introduction, _ = self.compile_blocks(segmented.introduction)
        conclusion, _ = self.compile_blocks(segmented.conclusion)

        logger.debug(
            f"Compiled lesson with {len(sections)} sections",
            extra={"section_count": len(sections), "resource_count": len(segmented.resources)},
        )
        return Lezione(
            metadati=metadata,
            introduzione=introduction or None,
            sezioni=sections,
            conclusione=conclusion or None,
            risorse=list(segmented.resources),
        )

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def compile_metadata(self, ast: AstDocument) -> Optional[MetadatiLezione]:
        if ast.frontmatter is None:
            message = "Missing frontmatter: lesson metadata is empty"
            help = "Start the file with a '---' YAML block declaring id, title, subject, topic and level"
            if self.strict:
                self.diagnostics.error(ErrorCode.MISSING_FRONTMATTER, message, help=help)
            else:
                self.diagnostics.warning(WarningCode.MISSING_METADATA, message, help=help)
            return None

        data = ast.frontmatter.data
        location = ast.frontmatter.location
        for key in REQUIRED_FRONTMATTER_KEYS:
            if data.get(key) in (None, ""):
                message = f"Missing required frontmatter key '{key}'"
                if self.strict:
                    self.diagnostics.error(ErrorCode.MISSING_METADATA, message, location)
                else:
                    self.diagnostics.warning(WarningCode.MISSING_METADATA, message, location)

        fields: Dict[str, Any] = {}
        for key, value in data.items():
            field = FRONTMATTER_FIELDS.get(key)
            if field is None and key in MetadatiLezione.model_fields:
                field = key
            if field is not None and value is not None:
                fields[field] = value

        try:
            return MetadatiLezione(**fields)
        except ValidationError as e:
            for error in e.errors():
                name = ".".join(str(part) for part in error["loc"])
                self.diagnostics.error(
                    ErrorCode.INVALID_VALUE,
                    f"Invalid metadata '{name}': {error['msg']}",
                    location,
                )
            return None

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    def compile_section(self, section: Section) -> SezioneLezione:
        if any(isinstance(block, HeadingBlock) and block.depth == 2 for block in section.blocks):
            runs = split_steps(
                section.blocks, lambda b: isinstance(b, HeadingBlock) and b.depth == 2
            )
            steps = [
                self.directives.build_step(title, run, number)
                for number, (title, run) in enumerate(runs, 1)
            ]
            return SezioneLezione(
                id=section.id,
                titolo=section.title,
                blocchi=[BloccoSequenza(steps=steps)],
            )

        blocks, transitions = self.compile_blocks(section.blocks)
        return SezioneLezione(
            id=section.id,
            titolo=section.title,
            blocchi=blocks,
            transitions=transitions or None,
        )

    def compile_blocks(self, blocks: Sequence[AstBlock]) -> Tuple[List[Blocco], List[int]]:
        """Compile a run of AST blocks.

        Returns:
            (compiled blocks, transition indices); a transition before the
            n-th compiled block is recorded as ``n``
        """
        compiled: List[Blocco] = []
        transitions: List[int] = []
        for block in blocks:
            if block.type in ("transition", "step-break"):
                transitions.append(len(compiled))
                continue
            compiled.extend(self.compile_block(block))
        return compiled, transitions

    def compile_block(self, block: AstBlock) -> List[Blocco]:
        if isinstance(block, ParagraphBlock):
            return [BloccoTesto(contenuto=block.content)]
        if isinstance(block, HeadingBlock):
            # H1/H2 are structural and consumed earlier; a stray one still renders
            return [BloccoTitolo(livello=heading_level(block.depth), testo=block.text)]
        if isinstance(block, LatexDisplayBlock):
            return [BloccoFormula(latex=block.latex, etichetta=block.label)]
        if isinstance(block, ListBlock):
            return [BloccoElenco(ordinato=block.ordered, elementi=list(block.items))]
        if isinstance(block, ImageBlock):
            if not block.alt:
                self.diagnostics.warning(
                    WarningCode.MISSING_METADATA,
                    f"Image '{block.src}' has no alt text",
                    block.location,
                    help="Describe the image: ![description](url)",
                )
            return [BloccoImmagine(src=block.src, alt=block.alt)]
        if isinstance(block, DirectiveBlock):
            return self.directives.compile(block)
        # section-break inside a run carries no content
        return []
