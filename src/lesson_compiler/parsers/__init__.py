"""Parser stage: pre-processing, Markdown grammar, AST and directive bodies."""

from lesson_compiler.parsers.ast_builder import AstBuilder
from lesson_compiler.parsers.directive_body import parse_directive_body, parse_value
from lesson_compiler.parsers.grammar import GenericNode, MarkdownGrammar, MarkdownItGrammar
from lesson_compiler.parsers.preprocessor import preprocess, tokenize

__all__ = [
    "AstBuilder",
    "parse_directive_body",
    "parse_value",
    "GenericNode",
    "MarkdownGrammar",
    "MarkdownItGrammar",
    "preprocess",
    "tokenize",
]
