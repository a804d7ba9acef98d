"""Source parsing and AST extraction for JavaScript and TypeScript."""

from testgenie.parsing.batch import BatchParseResult, FileFailure, parse_file, parse_files
from testgenie.parsing.languages import extract_from_file, extract_from_source, get_extractor
from testgenie.parsing.treesitter import (
    ParsedFile,
    ParsedFunction,
    ParseError,
    detect_language,
    parse_code,
)

__all__ = [
    "BatchParseResult",
    "FileFailure",
    "ParseError",
    "ParsedFile",
    "ParsedFunction",
    "detect_language",
    "extract_from_file",
    "extract_from_source",
    "get_extractor",
    "parse_code",
    "parse_file",
    "parse_files",
]
