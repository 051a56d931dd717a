"""Semantic stage and compiler entry points."""

from lesson_compiler.compiler.pipeline import compile, compile_with_report, validate

__all__ = ["compile", "compile_with_report", "validate"]
