"""Tree-sitter parsing frontends."""

from .base import (
    BaseParser,
    Declaration,
    SourceUnit,
    VariableDeclarator,
    get_parser_for_file,
    get_parser_for_language,
    register_parser,
)
from .java_parser import JavaParser

__all__ = [
    "BaseParser",
    "Declaration",
    "SourceUnit",
    "VariableDeclarator",
    "JavaParser",
    "get_parser_for_file",
    "get_parser_for_language",
    "register_parser",
]
