"""Tree-sitter wrapper and the parsed-file data model."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, cast

import tree_sitter
import tree_sitter_language_pack as tslp

if TYPE_CHECKING:
    from tree_sitter_language_pack import SupportedLanguage

logger = logging.getLogger(__name__)

# Map file extensions to tree-sitter language names
EXTENSION_TO_LANGUAGE: dict[str, str] = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".tsx": "tsx",
}

SUPPORTED_LANGUAGES = frozenset({"javascript", "typescript", "tsx"})


@dataclass(frozen=True)
class ParsedFunction:
    """A function, arrow function or class method found in a source file."""

    name: str
    params: tuple[str, ...] = ()
    return_type: str | None = None
    is_async: bool = False
    is_exported: bool = False
    start_line: int = 0
    end_line: int = 0


@dataclass(frozen=True)
class ParsedFile:
    """Everything extracted from one source file."""

    file_path: str
    functions: tuple[ParsedFunction, ...] = field(default_factory=tuple)
    imports: tuple[str, ...] = field(default_factory=tuple)
    exports: tuple[str, ...] = field(default_factory=tuple)


class ParseError(Exception):
    """Raised when a source file cannot be parsed."""

    def __init__(self, file_path: str, message: str) -> None:
        super().__init__(f"{file_path}: {message}")
        self.file_path = file_path
        self.message = message


# Language objects are immutable and safe to share; parsers are not.
_language_cache: dict[str, tree_sitter.Language] = {}


def detect_language(file_path: str | Path) -> str | None:
    """Detect language from file extension.

    Returns the tree-sitter language name, or None if unsupported.
    """
    return EXTENSION_TO_LANGUAGE.get(Path(file_path).suffix)


def get_language(language: str) -> tree_sitter.Language:
    """Get a (cached) tree-sitter Language object for the given language."""
    if language not in SUPPORTED_LANGUAGES:
        raise ValueError(f"Unsupported language: {language}")
    cached = _language_cache.get(language)
    if cached is not None:
        return cached
    lang = tslp.get_language(cast("SupportedLanguage", language))
    _language_cache[language] = lang
    return lang


def new_parser(language: str) -> tree_sitter.Parser:
    """Create a parser for *language*.

    A fresh parser is returned on every call so concurrent parses in worker
    threads never share parser state.
    """
    return tree_sitter.Parser(get_language(language))


def parse_code(source: bytes, language: str) -> tree_sitter.Tree:
    """Parse source code bytes into a tree-sitter AST."""
    return new_parser(language).parse(source)


def has_parse_errors(root: tree_sitter.Node) -> bool:
    """Check if the AST contains any parse errors."""
    return root.has_error


def collect_error_ranges(root: tree_sitter.Node) -> list[tuple[int, int]]:
    """Collect 1-based line ranges of parse error nodes."""
    errors: list[tuple[int, int]] = []
    stack = [root]
    while stack:
        node = stack.pop()
        if node.is_error or node.is_missing:
            errors.append((node.start_point.row + 1, node.end_point.row + 1))
            continue
        if node.has_error:
            stack.extend(reversed(node.children))
    return errors


def describe_errors(root: tree_sitter.Node) -> str:
    """Build a short human-readable description of the syntax errors in *root*."""
    ranges = collect_error_ranges(root)
    if not ranges:
        return "syntax error"
    start, end = ranges[0]
    where = f"line {start}" if start == end else f"lines {start}-{end}"
    more = f" (+{len(ranges) - 1} more)" if len(ranges) > 1 else ""
    return f"syntax error at {where}{more}"
