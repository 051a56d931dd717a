"""Shared utilities: file I/O, logging, reporting and text helpers."""

from lesson_compiler.utils.file_io import list_files, output_path_for, read_markdown, write_json
from lesson_compiler.utils.logging_config import compile_stage_logger, configure_logging
from lesson_compiler.utils.reporting import format_error, format_report, format_summary, format_warning
from lesson_compiler.utils.text import LineIndex, fold_accents, normalize_newlines, slugify

__all__ = [
    "list_files",
    "output_path_for",
    "read_markdown",
    "write_json",
    "compile_stage_logger",
    "configure_logging",
    "format_error",
    "format_report",
    "format_summary",
    "format_warning",
    "LineIndex",
    "fold_accents",
    "normalize_newlines",
    "slugify",
]
