"""Compiler entry points.

Each call owns its diagnostics collector and stage objects; nothing is shared
between calls.

Example:
    >>> from lesson_compiler import compile
    >>> result = compile(open("moto.md", encoding="utf-8").read(), source_path="moto.md")
    >>> result.success, len(result.lesson.sezioni)
    (True, 3)
"""

import logging
from typing import Optional, Tuple

from lesson_compiler.compiler.lesson_compiler import LessonCompiler
from lesson_compiler.compiler.segmenter import Segmenter
from lesson_compiler.models.diagnostics import Diagnostics, ErrorCode
from lesson_compiler.models.lesson import CompileResult, ValidationReport
from lesson_compiler.parsers.ast_builder import AstBuilder
from lesson_compiler.parsers.grammar import MarkdownGrammar
from lesson_compiler.utils.logging_config import compile_stage_logger
from lesson_compiler.utils.reporting import format_report

logger = logging.getLogger(__name__)


def compile(
    source: str,
    strict: bool = False,
    source_path: str = "<input>",
    grammar: Optional[MarkdownGrammar] = None,
) -> CompileResult:
    """Compile lesson Markdown into a ``Lezione``.

    Args:
        source: Lesson Markdown text
        strict: Report missing metadata as errors and promote every warning
            to an error
        source_path: Name used in logs and reports
        grammar: Markdown grammar to use (default: markdown-it-py)

    Returns:
        CompileResult; ``lesson`` is None only when the frontmatter could not
        be parsed, ``success`` is True iff there are no errors
    """
    diagnostics = Diagnostics()

    with compile_stage_logger("parse", source_path=source_path):
        ast = AstBuilder(diagnostics, grammar).parse(source)

    lesson = None
    if not diagnostics.has_code(ErrorCode.INVALID_FRONTMATTER):
        with compile_stage_logger("segment", source_path=source_path):
            segmented = Segmenter(diagnostics).segment(ast.blocks)
        with compile_stage_logger("compile", source_path=source_path):
            lesson = LessonCompiler(diagnostics, strict=strict).compile(ast, segmented)

    if strict:
        diagnostics.promote_warnings()

    result = CompileResult(
        success=diagnostics.success,
        lesson=lesson,
        errors=list(diagnostics.errors),
        warnings=list(diagnostics.warnings),
    )
    logger.debug(
        f"Compiled {source_path}: {len(result.errors)} error(s), {len(result.warnings)} warning(s)",
        extra={"source_path": source_path, "success": result.success, "strict": strict},
    )
    return result


def compile_with_report(
    source: str,
    strict: bool = False,
    source_path: str = "<input>",
    grammar: Optional[MarkdownGrammar] = None,
) -> Tuple[CompileResult, str]:
    """Compile and format the diagnostics as a human-readable report."""
    result = compile(source, strict=strict, source_path=source_path, grammar=grammar)
    report = format_report(result.errors, result.warnings, source_path, source)
    return result, report


def validate(
    source: str,
    strict: bool = False,
    source_path: str = "<input>",
    grammar: Optional[MarkdownGrammar] = None,
) -> ValidationReport:
    """Compile and keep only the diagnostics."""
    result = compile(source, strict=strict, source_path=source_path, grammar=grammar)
    return ValidationReport(valid=result.success, errors=result.errors, warnings=result.warnings)
