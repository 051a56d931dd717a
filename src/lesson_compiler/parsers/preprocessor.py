"""Line-scanning pre-processor for transitions and ``:::`` directives.

The Markdown grammar knows nothing about ``>>>`` markers or ``:::name``
fences, so they are replaced by placeholder paragraphs before parsing and
re-expanded by the AST builder.

Pipeline:
    tokenize(source)   -> LineToken stream (TEXT / TRANSITION / DIRECTIVE /
                          UNTERMINATED_DIRECTIVE)
    preprocess(source) -> PreprocessResult (rewritten text, placeholder maps,
                          line map back to the original source)
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set

from lesson_compiler.utils.text import normalize_newlines

logger = logging.getLogger(__name__)

TRANSITION_RE = re.compile(r"^[ \t]*>>>[ \t]*$")
DIRECTIVE_OPEN_RE = re.compile(r"^:::([A-Za-z_][\w-]*)(?:[ \t]+(.*?))?[ \t]*$")
DIRECTIVE_CLOSE_RE = re.compile(r"^:::[ \t]*$")
CODE_FENCE_RE = re.compile(r"^ {0,3}(`{3,}|~{3,})")

TRANSITION_PREFIX = "TRANSITION_PLACEHOLDER_"
DIRECTIVE_PREFIX = "DIRECTIVE_PLACEHOLDER_"


class TokenKind(str, Enum):
    TEXT = "text"
    TRANSITION = "transition"
    DIRECTIVE = "directive"
    UNTERMINATED_DIRECTIVE = "unterminated_directive"


@dataclass(frozen=True)
class ExtractedDirective:
    """A directive lifted out of the source text."""

    name: str
    variant: str
    content: str
    raw_content: str
    line: int
    end_line: int


@dataclass(frozen=True)
class LineToken:
    """One or more source lines classified by the scanner.

    TEXT, TRANSITION and UNTERMINATED_DIRECTIVE tokens cover a single line;
    DIRECTIVE tokens cover the opening fence through the closing fence.
    """

    kind: TokenKind
    line: int
    text: str
    directive: Optional[ExtractedDirective] = None


@dataclass
class PreprocessResult:
    text: str
    transitions: Set[str] = field(default_factory=set)
    directives: Dict[str, ExtractedDirective] = field(default_factory=dict)
    unterminated: List[ExtractedDirective] = field(default_factory=list)
    line_map: List[int] = field(default_factory=list)

    def original_line(self, processed_line: int) -> int:
        """Original 1-based line for a 0-based line of the processed text."""
        if not self.line_map:
            return 1
        index = min(max(processed_line, 0), len(self.line_map) - 1)
        return self.line_map[index]


def _find_closing_fence(lines: List[str], start: int) -> Optional[int]:
    for index in range(start, len(lines)):
        if DIRECTIVE_CLOSE_RE.match(lines[index]):
            return index
    return None


def tokenize(source: str, first_line: int = 1) -> List[LineToken]:
    """Classify the lines of ``source``.

    Args:
        source: Raw Markdown text
        first_line: Line number of the first line of ``source`` in the
            enclosing document (used when re-scanning a directive body)

    Returns:
        Tokens in document order. Lines inside fenced code blocks are always
        TEXT. An opening ``:::name`` fence with no closing fence yields an
        UNTERMINATED_DIRECTIVE token and scanning resumes on the next line.
    """
    lines = normalize_newlines(source).split("\n")
    tokens: List[LineToken] = []
    open_fence: Optional[str] = None
    index = 0

    while index < len(lines):
        line = lines[index]
        line_no = first_line + index

        fence = CODE_FENCE_RE.match(line)
        if open_fence is not None:
            # a closing fence carries no info string
            if (
                fence
                and fence.group(1)[0] == open_fence[0]
                and len(fence.group(1)) >= len(open_fence)
                and not line[fence.end():].strip()
            ):
                open_fence = None
            tokens.append(LineToken(TokenKind.TEXT, line_no, line))
            index += 1
            continue
        if fence:
            open_fence = fence.group(1)
            tokens.append(LineToken(TokenKind.TEXT, line_no, line))
            index += 1
            continue

        if TRANSITION_RE.match(line):
            tokens.append(LineToken(TokenKind.TRANSITION, line_no, line))
            index += 1
            continue

        opening = DIRECTIVE_OPEN_RE.match(line)
        if opening:
            close_index = _find_closing_fence(lines, index + 1)
            name = opening.group(1)
            variant = (opening.group(2) or "").strip()
            if close_index is None:
                raw = "\n".join(lines[index + 1:])
                tokens.append(
                    LineToken(
                        TokenKind.UNTERMINATED_DIRECTIVE,
                        line_no,
                        line,
                        ExtractedDirective(
                            name=name,
                            variant=variant,
                            content=raw.strip(),
                            raw_content=raw,
                            line=line_no,
                            end_line=first_line + len(lines) - 1,
                        ),
                    )
                )
                index += 1
                continue

            raw = "\n".join(lines[index + 1:close_index])
            tokens.append(
                LineToken(
                    TokenKind.DIRECTIVE,
                    line_no,
                    "\n".join(lines[index:close_index + 1]),
                    ExtractedDirective(
                        name=name,
                        variant=variant,
                        content=raw.strip(),
                        raw_content=raw,
                        line=line_no,
                        end_line=first_line + close_index,
                    ),
                )
            )
            index = close_index + 1
            continue

        tokens.append(LineToken(TokenKind.TEXT, line_no, line))
        index += 1

    return tokens


def preprocess(source: str, first_line: int = 1) -> PreprocessResult:
    """Replace transitions and directives with placeholder paragraphs.

    Each placeholder is surrounded by blank lines so the grammar parses it as
    a paragraph of its own. Counters are local to the call.

    Args:
        source: Raw Markdown text
        first_line: Line number of the first line of ``source`` in the
            enclosing document

    Returns:
        PreprocessResult with the rewritten text and lookup tables
    """
    result = PreprocessResult(text="")
    out_lines: List[str] = []
    transition_counter = 0
    directive_counter = 0

    def emit(text: str, line: int) -> None:
        out_lines.append(text)
        result.line_map.append(line)

    def emit_isolated(placeholder: str, line: int) -> None:
        emit("", line)
        emit(placeholder, line)
        emit("", line)

    for token in tokenize(source, first_line):
        if token.kind == TokenKind.TRANSITION:
            placeholder = f"{TRANSITION_PREFIX}{transition_counter}"
            transition_counter += 1
            result.transitions.add(placeholder)
            emit_isolated(placeholder, token.line)
        elif token.kind == TokenKind.DIRECTIVE:
            placeholder = f"{DIRECTIVE_PREFIX}{directive_counter}"
            directive_counter += 1
            result.directives[placeholder] = token.directive
            emit_isolated(placeholder, token.line)
        elif token.kind == TokenKind.UNTERMINATED_DIRECTIVE:
            logger.debug(
                f"Unterminated directive '{token.directive.name}' at line {token.line}, kept as text"
            )
            result.unterminated.append(token.directive)
            emit(token.text, token.line)
        else:
            emit(token.text, token.line)

    result.text = "\n".join(out_lines)
    logger.debug(
        f"Pre-processed {len(result.transitions)} transitions and {len(result.directives)} directives",
        extra={
            "transition_count": len(result.transitions),
            "directive_count": len(result.directives),
        },
    )
    return result
