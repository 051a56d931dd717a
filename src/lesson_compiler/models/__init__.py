"""Typed models shared by the parser and compiler stages."""

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
from lesson_compiler.models.diagnostics import (
    CompilerError,
    CompilerWarning,
    Diagnostics,
    ErrorCode,
    SourceLocation,
    SourceRange,
    WarningCode,
)
from lesson_compiler.models.lesson import (
    Blocco,
    CompileResult,
    Lezione,
    MetadatiLezione,
    Risorsa,
    SezioneLezione,
    ValidationReport,
)

__all__ = [
    "AstBlock",
    "AstDocument",
    "DirectiveBlock",
    "Frontmatter",
    "HeadingBlock",
    "ImageBlock",
    "LatexDisplayBlock",
    "ListBlock",
    "ParagraphBlock",
    "SectionBreakBlock",
    "StepBreakBlock",
    "TransitionBlock",
    "CompilerError",
    "CompilerWarning",
    "Diagnostics",
    "ErrorCode",
    "SourceLocation",
    "SourceRange",
    "WarningCode",
    "Blocco",
    "CompileResult",
    "Lezione",
    "MetadatiLezione",
    "Risorsa",
    "SezioneLezione",
    "ValidationReport",
]
