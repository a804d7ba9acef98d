"""Base class for language-specific AST extractors."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from testgenie.parsing.syntax import SyntaxNode, from_tree_sitter
from testgenie.parsing.treesitter import (
    ParsedFile,
    ParsedFunction,
    ParseError,
    describe_errors,
    has_parse_errors,
    parse_code,
)

logger = logging.getLogger(__name__)


class LanguageExtractor(ABC):
    """Base class for language-specific AST extractors."""

    @property
    @abstractmethod
    def language(self) -> str:
        """Tree-sitter language name."""

    def fallback_languages(self, file_path: str) -> tuple[str, ...]:
        """Grammars tried, in order, when the primary grammar rejects *file_path*."""
        return ()

    def parse(self, source: bytes, file_path: str) -> SyntaxNode:
        """Parse *source* into a typed syntax tree.

        Raises:
            ParseError: If neither the primary nor a fallback grammar
                accepts the source.
        """
        tree = parse_code(source, self.language)
        if has_parse_errors(tree.root_node):
            for fallback in self.fallback_languages(file_path):
                candidate = parse_code(source, fallback)
                if not has_parse_errors(candidate.root_node):
                    logger.debug("Parsed %s with fallback grammar %s", file_path, fallback)
                    tree = candidate
                    break
            else:
                raise ParseError(file_path, describe_errors(tree.root_node))
        return from_tree_sitter(tree.root_node, source)

    def extract(self, source: bytes, file_path: str) -> ParsedFile:
        """Parse source and extract functions, imports and exports."""
        root = self.parse(source, file_path)
        return ParsedFile(
            file_path=file_path,
            functions=tuple(self.extract_functions(root)),
            imports=tuple(self.extract_imports(root)),
            exports=tuple(self.extract_exports(root)),
        )

    @abstractmethod
    def extract_functions(self, root: SyntaxNode) -> list[ParsedFunction]:
        """Extract functions, arrow functions and class methods."""

    @abstractmethod
    def extract_imports(self, root: SyntaxNode) -> list[str]:
        """Extract import module specifiers."""

    @abstractmethod
    def extract_exports(self, root: SyntaxNode) -> list[str]:
        """Extract exported names."""
