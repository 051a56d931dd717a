"""Human-readable diagnostic reports.

Output looks like::

    error[E008]: Invalid YAML: ...
      --> lezioni/moto.md:1:1
       |
     1 | ---
       | ^
       = help: Check quoting and indentation of the frontmatter block
"""

from typing import List, Optional, Sequence, Union

from lesson_compiler.models.diagnostics import CompilerError, CompilerWarning
from lesson_compiler.utils.text import normalize_newlines

Diagnostic = Union[CompilerError, CompilerWarning]


def _format(
    severity: str,
    diagnostic: Diagnostic,
    source_path: str,
    source_lines: Optional[Sequence[str]],
) -> str:
    parts: List[str] = [f"{severity}[{diagnostic.code}]: {diagnostic.message}"]
    location = diagnostic.location
    if location is not None:
        line, column = location.start.line, location.start.column
        parts.append(f"  --> {source_path}:{line}:{column}")
        if source_lines is not None and 0 < line <= len(source_lines):
            gutter = " " * len(str(line))
            parts.append(f" {gutter} |")
            parts.append(f" {line} | {source_lines[line - 1]}")
            parts.append(f" {gutter} | {' ' * (column - 1)}^")
    if diagnostic.help:
        parts.append(f"   = help: {diagnostic.help}")
    return "\n".join(parts)


def format_error(
    error: CompilerError,
    source_path: str,
    source_lines: Optional[Sequence[str]] = None,
) -> str:
    """Format an error, with a source excerpt when ``source_lines`` is given."""
    return _format("error", error, source_path, source_lines)


def format_warning(
    warning: CompilerWarning,
    source_path: str,
    source_lines: Optional[Sequence[str]] = None,
) -> str:
    return _format("warning", warning, source_path, source_lines)


def format_summary(error_count: int, warning_count: int) -> str:
    """One-line outcome.

    Example:
        >>> format_summary(0, 0)
        'Compilation successful'
        >>> format_summary(1, 2)
        'Compilation failed: 1 error(s), 2 warning(s)'
    """
    if error_count == 0 and warning_count == 0:
        return "Compilation successful"
    if error_count == 0:
        return f"Compilation successful: {warning_count} warning(s)"
    parts = [f"{error_count} error(s)"]
    if warning_count > 0:
        parts.append(f"{warning_count} warning(s)")
    return f"Compilation failed: {', '.join(parts)}"


def format_report(
    errors: Sequence[CompilerError],
    warnings: Sequence[CompilerWarning],
    source_path: str,
    source: Optional[str] = None,
) -> str:
    """Errors first, then warnings, then the summary line."""
    source_lines = normalize_newlines(source).split("\n") if source is not None else None
    sections = [format_error(e, source_path, source_lines) for e in errors]
    sections += [format_warning(w, source_path, source_lines) for w in warnings]
    sections.append(format_summary(len(errors), len(warnings)))
    return "\n\n".join(sections)
