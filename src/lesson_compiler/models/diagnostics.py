"""Source locations and compiler diagnostics.

Diagnostics are plain data: every stage appends to a ``Diagnostics`` collector
owned by a single ``compile`` call instead of raising.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


# ============================================================================
# Source Locations
# ============================================================================


class SourceLocation(BaseModel):
    """A point in the original source (1-based line/column, 0-based offset)."""

    line: int = Field(..., ge=1)
    column: int = Field(..., ge=1)
    offset: Optional[int] = Field(None, ge=0)


class SourceRange(BaseModel):
    """Start/end span attached to AST nodes and diagnostics."""

    start: SourceLocation
    end: SourceLocation


# ============================================================================
# Codes
# ============================================================================


class ErrorCode(str, Enum):
    """Structural and semantic faults."""

    MISSING_FRONTMATTER = "E001"  # strict mode only
    MISSING_METADATA = "E002"  # strict mode only
    UNTERMINATED_DIRECTIVE = "E003"  # reserved, reported as W005
    UNKNOWN_DIRECTIVE = "E004"  # reserved, reported as W001
    MISSING_FIELD = "E005"  # reserved, reported as W003
    INVALID_JSON = "E006"
    INVALID_ATTRIBUTES = "E007"  # reserved
    INVALID_FRONTMATTER = "E008"
    INVALID_VALUE = "E009"


class WarningCode(str, Enum):
    """Non-fatal quality issues."""

    UNKNOWN_DIRECTIVE = "W001"
    QUIZ_ANSWERS = "W002"
    MALFORMED_DIRECTIVE = "W003"
    MISSING_METADATA = "W004"
    CONTENT_DROPPED = "W005"


# ============================================================================
# Diagnostics
# ============================================================================


class CompilerError(BaseModel):
    """A diagnostic that makes the compilation unsuccessful."""

    code: str = Field(..., description="Stable identifier, E001-E009 (or a promoted W code in strict mode)")
    message: str
    location: Optional[SourceRange] = None
    help: Optional[str] = None


class CompilerWarning(BaseModel):
    """A diagnostic that never affects ``success``."""

    code: str = Field(..., description="Stable identifier, W001-W005")
    message: str
    location: Optional[SourceRange] = None
    help: Optional[str] = None


class Diagnostics:
    """Per-call accumulator shared by the parser and compiler stages.

    Entries are only ever appended, never removed.
    """

    def __init__(self) -> None:
        self.errors: List[CompilerError] = []
        self.warnings: List[CompilerWarning] = []

    def error(
        self,
        code: ErrorCode,
        message: str,
        location: Optional[SourceRange] = None,
        help: Optional[str] = None,
    ) -> None:
        self.errors.append(
            CompilerError(code=code.value, message=message, location=location, help=help)
        )

    def warning(
        self,
        code: WarningCode,
        message: str,
        location: Optional[SourceRange] = None,
        help: Optional[str] = None,
    ) -> None:
        self.warnings.append(
            CompilerWarning(code=code.value, message=message, location=location, help=help)
        )

    def promote_warnings(self) -> None:
        """Copy every warning into the error list (strict mode)."""
        for warning in self.warnings:
            self.errors.append(
                CompilerError(
                    code=warning.code,
                    message=f"[strict] {warning.message}",
                    location=warning.location,
                    help=warning.help,
                )
            )

    def has_code(self, code: ErrorCode) -> bool:
        return any(error.code == code.value for error in self.errors)

    @property
    def success(self) -> bool:
        return not self.errors
