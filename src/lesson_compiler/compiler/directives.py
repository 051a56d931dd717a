"""Directive → pedagogical block mapping.

Each handler receives a ``DirectiveBlock`` and returns the compiled blocks.
Malformed bodies produce warnings and a best-effort block; unknown directive
names are kept as a generic ``direttiva`` block.
"""

import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from lesson_compiler.models.ast import AstBlock, DirectiveBlock, HeadingBlock, StepBreakBlock
from lesson_compiler.models.diagnostics import Diagnostics, ErrorCode, WarningCode
from lesson_compiler.models.lesson import (
    BLOCCHI_ADAPTER,
    Blocco,
    BloccoAttivita,
    BloccoBrainstorming,
    BloccoCallout,
    BloccoCitazione,
    BloccoCodice,
    BloccoCollegamento,
    BloccoDefinizione,
    BloccoDemo,
    BloccoDirettiva,
    BloccoEsempio,
    BloccoImmagine,
    BloccoNota,
    BloccoQuestion,
    BloccoQuiz,
    BloccoSeparatore,
    BloccoSequenza,
    BloccoStepByStep,
    BloccoTabella,
    BloccoTeorema,
    BloccoVideo,
    CalloutVariante,
    Difficolta,
    NotaVariante,
    OpzioneQuiz,
    PassoStepByStep,
    SequenzaStep,
)
from lesson_compiler.parsers.directive_body import ATTRIBUTE_RE, parse_value
from lesson_compiler.utils.text import slugify

logger = logging.getLogger(__name__)

QUIZ_OPTION_RE = re.compile(r"^\s*-\s*\[([ xX])\]\s*(.+)$")
STEP_ITEM_RE = re.compile(r"^\d+\.\s*(.+)$")

NOTE_VARIANTS = {
    "info": NotaVariante.INFO,
    "warning": NotaVariante.ATTENZIONE,
    "attenzione": NotaVariante.ATTENZIONE,
    "tip": NotaVariante.SUGGERIMENTO,
    "suggerimento": NotaVariante.SUGGERIMENTO,
    "remember": NotaVariante.RICORDA,
    "ricorda": NotaVariante.RICORDA,
}

# Compiles a run of AST blocks into (blocks, transition indices).
BlockListCompiler = Callable[[Sequence[AstBlock]], Tuple[List[Blocco], List[int]]]


def _text(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def recover_keys(
    attrs: Dict[str, Any], content: str, keys: Sequence[str]
) -> Tuple[Dict[str, Any], str]:
    """Pull ``key: value`` lines for ``keys`` back out of directive content.

    The body parser never leaves content mode, so attributes written after a
    list item (e.g. a quiz ``explanation:`` after its options) end up in the
    content. Keys already present in ``attrs`` are left alone.

    Returns:
        (attributes including the recovered keys, remaining content)
    """
    merged = dict(attrs)
    remaining: List[str] = []
    for line in content.split("\n"):
        match = ATTRIBUTE_RE.match(line.strip())
        if match and match.group(1) in keys and match.group(1) not in merged and match.group(2).strip():
            merged[match.group(1)] = parse_value(match.group(2).strip())
        else:
            remaining.append(line)
    return merged, "\n".join(remaining).strip()


def split_steps(
    blocks: Sequence[AstBlock],
    is_boundary: Callable[[AstBlock], bool],
) -> List[Tuple[Optional[str], List[AstBlock]]]:
    """Split ``blocks`` into maximal runs between boundary blocks.

    A heading boundary titles the run it opens; a run opened by any other
    boundary takes its title from a leading heading, if there is one. Empty
    untitled runs are dropped. An untitled run holding only transitions is
    carried into the next run (or appended to the last one at the end), so
    no transition is lost.
    """
    runs: List[Tuple[Optional[str], List[AstBlock]]] = []
    pending: List[AstBlock] = []
    title: Optional[str] = None
    current: List[AstBlock] = []

    def close() -> None:
        nonlocal pending
        run_title, run = title, list(current)
        if run_title is None and run and isinstance(run[0], HeadingBlock):
            run_title, run = run[0].text, run[1:]
        run = pending + run
        if run_title is not None or any(block.type != "transition" for block in run):
            runs.append((run_title, run))
            pending = []
        else:
            pending = run

    for block in blocks:
        if is_boundary(block):
            close()
            title = block.text if isinstance(block, HeadingBlock) else None
            current = []
            continue
        current.append(block)
    close()

    if pending:
        if runs:
            last_title, last_run = runs[-1]
            runs[-1] = (last_title, last_run + pending)
        else:
            runs.append((None, pending))
    return runs


class DirectiveCompiler:
    """Maps directive names to pedagogical blocks."""

    def __init__(self, diagnostics: Diagnostics, compile_blocks: BlockListCompiler):
        self.diagnostics = diagnostics
        self.compile_blocks = compile_blocks
        self.handlers: Dict[str, Callable[[DirectiveBlock], List[Blocco]]] = {
            "note": self.compile_note,
            "nota": self.compile_note,
            "definition": self.compile_definition,
            "quiz": self.compile_quiz,
            "example": self.compile_example,
            "quote": self.compile_quote,
            "code": self.compile_code,
            "table": self.compile_table,
            "callout": self.compile_callout,
            "theorem": self.compile_theorem,
            "activity": self.compile_activity,
            "question": self.compile_question,
            "brainstorming": self.compile_brainstorming,
            "image": self.compile_image,
            "video": self.compile_video,
            "demo": self.compile_demo,
            "link": self.compile_link,
            "separator": self.compile_separator,
            "sequence": self.compile_sequence,
            "sequenza": self.compile_sequence,
            "step-by-step": self.compile_step_by_step,
            "json": self.compile_json,
        }

    def compile(self, block: DirectiveBlock) -> List[Blocco]:
        handler = self.handlers.get(block.name)
        if handler is None:
            return self.compile_generic(block)
        return handler(block)

    def _missing(self, block: DirectiveBlock, field: str, help: Optional[str] = None) -> None:
        self.diagnostics.warning(
            WarningCode.MALFORMED_DIRECTIVE,
            f"Field '{field}' is required in :::{block.name}",
            block.location,
            help=help or f"Add a line '{field}: ...' to the directive body",
        )

    # ------------------------------------------------------------------
    # Core pedagogical blocks
    # ------------------------------------------------------------------

    def compile_note(self, block: DirectiveBlock) -> List[Blocco]:
        attrs = block.attributes
        variant = _text(attrs.get("variant")) or next(
            (key for key in attrs if key in NOTE_VARIANTS), "info"
        )
        if variant not in NOTE_VARIANTS:
            self.diagnostics.warning(
                WarningCode.MALFORMED_DIRECTIVE,
                f"Unknown note variant '{variant}', using 'info'",
                block.location,
                help=f"Known variants: {', '.join(NOTE_VARIANTS)}",
            )
        return [BloccoNota(variante=NOTE_VARIANTS.get(variant, NotaVariante.INFO), contenuto=block.content)]

    def compile_definition(self, block: DirectiveBlock) -> List[Blocco]:
        attrs, content = recover_keys(block.attributes, block.content, ("term", "note"))
        term = _text(attrs.get("term"))
        if term is None:
            self._missing(block, "term")
        return [BloccoDefinizione(termine=term or "", definizione=content, nota=_text(attrs.get("note")))]

    def compile_quiz(self, block: DirectiveBlock) -> List[Blocco]:
        attrs, content = recover_keys(
            block.attributes, block.content, ("question", "explanation", "difficulty")
        )
        options: List[OpzioneQuiz] = []
        prose: List[str] = []
        for line in content.split("\n"):
            match = QUIZ_OPTION_RE.match(line)
            if match:
                options.append(OpzioneQuiz(testo=match.group(2).strip(), corretta=match.group(1) in "xX"))
            elif line.strip():
                prose.append(line.strip())

        question = _text(attrs.get("question")) or "\n".join(prose) or None
        if question is None:
            self._missing(block, "question")
        if not options:
            self.diagnostics.warning(
                WarningCode.MALFORMED_DIRECTIVE,
                "Quiz without options",
                block.location,
                help="List the options as '- [ ] wrong' and '- [x] right'",
            )
        else:
            correct = sum(1 for option in options if option.corretta)
            if correct != 1:
                self.diagnostics.warning(
                    WarningCode.QUIZ_ANSWERS,
                    f"Quiz has {correct} correct options, expected exactly one",
                    block.location,
                    help="Mark the right answer with '- [x]'",
                )

        difficulty = _text(attrs.get("difficulty"))
        if difficulty is not None and difficulty not in {d.value for d in Difficolta}:
            self.diagnostics.warning(
                WarningCode.MALFORMED_DIRECTIVE,
                f"Unknown quiz difficulty '{difficulty}'",
                block.location,
                help="Use one of: facile, media, difficile",
            )
            difficulty = None

        return [
            BloccoQuiz(
                domanda=question or "",
                opzioni=options,
                spiegazione=_text(attrs.get("explanation")) or "",
                difficolta=difficulty,
            )
        ]

    def compile_example(self, block: DirectiveBlock) -> List[Blocco]:
        attrs, content = recover_keys(
            block.attributes, block.content, ("title", "problem", "solution", "note")
        )
        problem = _text(attrs.get("problem")) or content or None
        solution = _text(attrs.get("solution"))
        if problem is None:
            self._missing(block, "problem")
        if solution is None:
            self._missing(block, "solution")
        return [
            BloccoEsempio(
                titolo=_text(attrs.get("title")),
                problema=problem or "",
                soluzione=solution or "",
                nota=_text(attrs.get("note")),
            )
        ]

    def compile_quote(self, block: DirectiveBlock) -> List[Blocco]:
        attrs = block.attributes
        return [
            BloccoCitazione(
                testo=block.content,
                autore=_text(attrs.get("author")),
                fonte=_text(attrs.get("source")),
            )
        ]

    def compile_code(self, block: DirectiveBlock) -> List[Blocco]:
        attrs = block.attributes
        language = _text(attrs.get("lang")) or _text(attrs.get("variant")) or "text"
        return [BloccoCodice(linguaggio=language, codice=block.raw_content or block.content)]

    def compile_table(self, block: DirectiveBlock) -> List[Blocco]:
        caption = _text(block.attributes.get("caption"))
        try:
            data = json.loads(block.content)
            return [
                BloccoTabella(
                    intestazione=data.get("header", []),
                    righe=data.get("rows", []),
                    didascalia=caption,
                )
            ]
        except (json.JSONDecodeError, AttributeError, ValidationError):
            self.diagnostics.warning(
                WarningCode.MALFORMED_DIRECTIVE,
                "Table content could not be read",
                block.location,
                help="Write tables as Markdown pipe tables",
            )
            return [BloccoTabella(didascalia=caption)]

    # ------------------------------------------------------------------
    # Additional block types
    # ------------------------------------------------------------------

    def compile_callout(self, block: DirectiveBlock) -> List[Blocco]:
        attrs = block.attributes
        known = {v.value for v in CalloutVariante}
        variant = _text(attrs.get("variant")) or next((key for key in attrs if key in known), "obiettivo")
        if variant not in known:
            self.diagnostics.warning(
                WarningCode.MALFORMED_DIRECTIVE,
                f"Unknown callout variant '{variant}', using 'obiettivo'",
                block.location,
            )
            variant = "obiettivo"
        return [
            BloccoCallout(
                variante=CalloutVariante(variant),
                titolo=_text(attrs.get("title")),
                contenuto=block.content,
            )
        ]

    def compile_theorem(self, block: DirectiveBlock) -> List[Blocco]:
        attrs = block.attributes
        statement = _text(attrs.get("statement")) or block.content or None
        if statement is None:
            self._missing(block, "statement")
        return [
            BloccoTeorema(
                nome=_text(attrs.get("name")),
                enunciato=statement or "",
                dimostrazione=_text(attrs.get("proof")),
            )
        ]

    def compile_activity(self, block: DirectiveBlock) -> List[Blocco]:
        attrs, content = recover_keys(block.attributes, block.content, ("note",))
        return [
            BloccoAttivita(titolo=_text(attrs.get("title")), consegna=content, nota=_text(attrs.get("note")))
        ]

    def compile_question(self, block: DirectiveBlock) -> List[Blocco]:
        attrs, content = recover_keys(block.attributes, block.content, ("answer",))
        question = _text(attrs.get("question")) or content or None
        answer = _text(attrs.get("answer"))
        if question is None:
            self._missing(block, "question")
        if answer is None:
            self._missing(block, "answer")
        return [BloccoQuestion(title=_text(attrs.get("title")), question=question or "", answer=answer or "")]

    def compile_brainstorming(self, block: DirectiveBlock) -> List[Blocco]:
        attrs = block.attributes
        title = _text(attrs.get("title"))
        if title is None:
            self._missing(block, "title")
        height = attrs.get("heightPx")
        persist_default = attrs.get("persistDefault")
        return [
            BloccoBrainstorming(
                title=title or "",
                placeholder=_text(attrs.get("placeholder")) or block.content or None,
                height_px=height if isinstance(height, int) and not isinstance(height, bool) else None,
                persist_id=_text(attrs.get("persistId")),
                persist_default=persist_default if isinstance(persist_default, bool) else None,
            )
        ]

    def compile_image(self, block: DirectiveBlock) -> List[Blocco]:
        attrs = block.attributes
        if not attrs.get("src") and not attrs.get("assetId"):
            self._missing(block, "src", help="Add 'src: ...' or 'assetId: ...'")
        width = attrs.get("width")
        return [
            BloccoImmagine(
                src=_text(attrs.get("src")),
                asset_id=_text(attrs.get("assetId")),
                alt=_text(attrs.get("alt")) or "",
                didascalia=_text(attrs.get("caption")) or block.content or None,
                larghezza=width if isinstance(width, int) and not isinstance(width, bool) else None,
            )
        ]

    def compile_video(self, block: DirectiveBlock) -> List[Blocco]:
        attrs = block.attributes
        if not attrs.get("src") and not attrs.get("assetId"):
            self._missing(block, "src", help="Add 'src: ...' or 'assetId: ...'")
        return [
            BloccoVideo(
                src=_text(attrs.get("src")),
                asset_id=_text(attrs.get("assetId")),
                titolo=_text(attrs.get("title")),
            )
        ]

    def compile_demo(self, block: DirectiveBlock) -> List[Blocco]:
        attrs = block.attributes
        component = _text(attrs.get("component"))
        if component is None:
            self._missing(block, "component")
        props = attrs.get("props")
        if isinstance(props, str):
            try:
                props = json.loads(props)
            except json.JSONDecodeError:
                props = None
        if props is not None and not isinstance(props, dict):
            self.diagnostics.warning(
                WarningCode.MALFORMED_DIRECTIVE,
                "Demo 'props' must be a JSON object",
                block.location,
            )
            props = None
        return [BloccoDemo(componente=component or "", props=props, titolo=_text(attrs.get("title")))]

    def compile_link(self, block: DirectiveBlock) -> List[Blocco]:
        attrs = block.attributes
        lesson_id = _text(attrs.get("lessonId"))
        text = _text(attrs.get("text")) or block.content or None
        if lesson_id is None:
            self._missing(block, "lessonId")
        if text is None:
            self._missing(block, "text")
        return [
            BloccoCollegamento(
                lezione_id=lesson_id or "",
                testo=text or "",
                descrizione=_text(attrs.get("description")),
            )
        ]

    def compile_separator(self, block: DirectiveBlock) -> List[Blocco]:
        return [BloccoSeparatore()]

    def compile_sequence(self, block: DirectiveBlock) -> List[Blocco]:
        runs = split_steps(block.children or [], lambda b: isinstance(b, StepBreakBlock))
        steps = [self.build_step(title, run, number) for number, (title, run) in enumerate(runs, 1)]
        if not steps:
            self.diagnostics.warning(
                WarningCode.MALFORMED_DIRECTIVE,
                "Sequence without steps",
                block.location,
                help="Separate the steps with lines containing only '>>>'",
            )
        return [BloccoSequenza(titolo=_text(block.attributes.get("title")), steps=steps)]

    def compile_step_by_step(self, block: DirectiveBlock) -> List[Blocco]:
        """Numbered lines of the body become ``Passo N`` steps; other lines are ignored."""
        steps: List[PassoStepByStep] = []
        for line in block.content.split("\n"):
            match = STEP_ITEM_RE.match(line.strip())
            if match:
                steps.append(PassoStepByStep(titolo=f"Passo {len(steps) + 1}", contenuto=match.group(1).strip()))
        if not steps:
            self.diagnostics.warning(
                WarningCode.MALFORMED_DIRECTIVE,
                "Step-by-step without numbered steps",
                block.location,
                help="Write each step as a numbered line: '1. ...'",
            )
        return [BloccoStepByStep(titolo=_text(block.attributes.get("title")), step=steps)]

    def build_step(self, title: Optional[str], blocks: Sequence[AstBlock], number: int) -> SequenzaStep:
        compiled, transitions = self.compile_blocks(blocks)
        return SequenzaStep(
            id=(slugify(title) if title else "") or f"step-{number}",
            titolo=title,
            transitions=transitions or None,
            blocchi=compiled,
        )

    def compile_json(self, block: DirectiveBlock) -> List[Blocco]:
        try:
            data = json.loads(block.raw_content or block.content)
            return BLOCCHI_ADAPTER.validate_python(data if isinstance(data, list) else [data])
        except json.JSONDecodeError as e:
            self.diagnostics.error(ErrorCode.INVALID_JSON, f"Invalid JSON: {e}", block.location)
        except ValidationError as e:
            self.diagnostics.error(
                ErrorCode.INVALID_JSON,
                f"JSON block does not match the block schema: {e.error_count()} validation error(s)",
                block.location,
                help="Each object needs a 'tipo' field naming a known block type",
            )
        return []

    def compile_generic(self, block: DirectiveBlock) -> List[Blocco]:
        logger.debug(f"Passing through unknown directive ':::{block.name}'")
        self.diagnostics.warning(
            WarningCode.UNKNOWN_DIRECTIVE,
            f"Unknown directive ':::{block.name}' kept as a generic block",
            block.location,
        )
        attributes = {key: value for key, value in block.attributes.items() if key != "variant"}
        return [
            BloccoDirettiva(
                nome=block.name,
                variante=_text(block.attributes.get("variant")),
                attributi=attributes,
                contenuto=block.content,
            )
        ]
