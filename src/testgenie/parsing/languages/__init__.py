"""Language-specific AST extractors.

Use get_extractor(), extract_from_source(), or extract_from_file()
to work with them.
"""

from __future__ import annotations

from pathlib import Path

from testgenie.parsing.languages.base import LanguageExtractor
from testgenie.parsing.languages.javascript import (
    JavaScriptExtractor,
    TSXExtractor,
    TypeScriptExtractor,
)
from testgenie.parsing.treesitter import ParsedFile, ParseError, detect_language

_EXTRACTORS: dict[str, type[LanguageExtractor]] = {
    "javascript": JavaScriptExtractor,
    "typescript": TypeScriptExtractor,
    "tsx": TSXExtractor,
}


def get_extractor(language: str) -> LanguageExtractor:
    """Get a language extractor instance for the given language."""
    cls = _EXTRACTORS.get(language)
    if cls is None:
        raise ValueError(f"No extractor for language: {language}")
    return cls()


def extract_from_source(source: bytes | str, file_path: str) -> ParsedFile:
    """Parse source code and extract functions, imports and exports.

    The grammar is chosen from the extension of *file_path*.

    Raises:
        ParseError: If the extension is unsupported or the source has
            syntax errors.
    """
    language = detect_language(file_path)
    if language is None:
        raise ParseError(file_path, f"unsupported file type {Path(file_path).suffix!r}")
    if isinstance(source, str):
        source = source.encode("utf-8")
    return get_extractor(language).extract(source, file_path)


def extract_from_file(file_path: str) -> ParsedFile:
    """Read and parse a file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ParseError: If the file cannot be parsed.
    """
    path = Path(file_path)
    if detect_language(path) is None:
        raise ParseError(file_path, f"unsupported file type {path.suffix!r}")
    return extract_from_source(path.read_bytes(), file_path)


__all__ = [
    "JavaScriptExtractor",
    "LanguageExtractor",
    "TSXExtractor",
    "TypeScriptExtractor",
    "extract_from_file",
    "extract_from_source",
    "get_extractor",
]
