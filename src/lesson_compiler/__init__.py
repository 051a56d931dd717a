"""Lesson Markdown compiler.

Turns lesson Markdown (``:::`` directives, ``>>>`` transitions) into a typed
``Lezione`` document plus diagnostics.
"""

from lesson_compiler.compiler import compile, compile_with_report, validate
from lesson_compiler.models import CompileResult, Lezione, ValidationReport

__version__ = "0.1.0"

__all__ = [
    "compile",
    "compile_with_report",
    "validate",
    "CompileResult",
    "Lezione",
    "ValidationReport",
    "__version__",
]
