"""Text helpers: accent folding, slugs and line/offset bookkeeping."""

import re
import unicodedata
from typing import List, Optional

from lesson_compiler.models.diagnostics import SourceLocation, SourceRange

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


def normalize_newlines(text: str) -> str:
    """Convert CRLF and lone CR line endings to LF."""
    return text.replace("\r\n", "\n").replace("\r", "\n")


def fold_accents(text: str) -> str:
    """Lowercase ``text`` and strip diacritics.

    Example:
        >>> fold_accents("Perché RIEPILOGO")
        'perche riepilogo'
    """
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.lower()


def slugify(text: str) -> str:
    """Build a section id from a heading title.

    Accents are stripped, the result lowercased and every run of
    non-alphanumeric characters collapsed into a single hyphen.

    Example:
        >>> slugify("Moto Rettilineo Uniforme: è facile!")
        'moto-rettilineo-uniforme-e-facile'
    """
    return _NON_ALNUM_RE.sub("-", fold_accents(text)).strip("-")


class LineIndex:
    """Maps 1-based line numbers of a source text to offsets and ranges."""

    def __init__(self, source: str):
        self.lines = source.split("\n")
        self.starts: List[int] = []
        offset = 0
        for line in self.lines:
            self.starts.append(offset)
            offset += len(line) + 1

    def _clamp(self, line: int) -> int:
        return min(max(line, 1), len(self.lines))

    def point(self, line: int, column: int = 1) -> SourceLocation:
        line = self._clamp(line)
        return SourceLocation(
            line=line, column=column, offset=self.starts[line - 1] + column - 1
        )

    def span(self, start_line: int, end_line: Optional[int] = None) -> SourceRange:
        """Range covering whole lines ``start_line``..``end_line`` inclusive."""
        end_line = self._clamp(end_line if end_line is not None else start_line)
        end_column = len(self.lines[end_line - 1]) + 1
        return SourceRange(
            start=self.point(start_line),
            end=self.point(end_line, end_column),
        )
