"""Path classification helpers.

Pure string predicates and transforms that decide whether a path is a source
file or a test file, and where the test for a source file lives.  Discovery,
coverage resolution and git-change filtering all go through these functions;
nothing else in the package should re-derive the rules.
"""

from __future__ import annotations

import os
import re
from pathlib import PurePosixPath

SOURCE_EXTENSIONS: tuple[str, ...] = (".js", ".ts", ".jsx", ".tsx")
"""Extensions recognized as JavaScript/TypeScript code."""

DEFAULT_TEST_DIR = "__tests__"

_DEFAULT_TEST_EXTENSION = ".js"

_TEST_FILE_RE = re.compile(r"\.(?:test|spec)\.(?:js|ts|jsx|tsx)$")
_SOURCE_FILE_RE = re.compile(r"\.(?:js|ts|jsx|tsx)$")


class InvalidArgumentError(ValueError):
    """Raised when a path helper receives a missing or malformed argument."""


def _basename(path: str) -> str:
    return path.replace("\\", "/").rsplit("/", 1)[-1]


def is_test_file(path: str | None) -> bool:
    """Return True if the final path component follows the ``*.test.*`` / ``*.spec.*`` convention.

    ``None`` and the empty string are not test files.
    """
    if not path:
        return False
    return _TEST_FILE_RE.search(_basename(path)) is not None


def is_source_file(path: str | None) -> bool:
    """Return True for a recognized code file that is not itself a test file."""
    if not path:
        return False
    return _SOURCE_FILE_RE.search(path) is not None and not is_test_file(path)


def _normalize(path: str) -> PurePosixPath:
    """Turn a user-supplied path into a relative POSIX path without ``.`` parts."""
    parts = [part for part in path.replace("\\", "/").split("/") if part not in ("", ".")]
    return PurePosixPath(*parts) if parts else PurePosixPath()


def get_test_file_path(source_file: str | None, test_dir: str = DEFAULT_TEST_DIR) -> str:
    """Map a source file to the path of its test file.

    The source's directory structure is kept beneath *test_dir* and its
    extension is reused for the ``.test.<ext>`` suffix::

        src/components/Button.tsx -> __tests__/src/components/Button.test.tsx

    Args:
        source_file: Source file path (relative paths are expected).
        test_dir: Directory that holds generated tests.

    Returns:
        The test file path as a POSIX string.

    Raises:
        InvalidArgumentError: If *source_file* is ``None`` or empty.
    """
    if not source_file:
        raise InvalidArgumentError("source_file must be a non-empty path")

    relative = _normalize(source_file)
    if not relative.name:
        raise InvalidArgumentError(f"source_file has no file name: {source_file!r}")

    suffix = relative.suffix if relative.suffix in SOURCE_EXTENSIONS else ""
    stem = relative.name[: -len(suffix)] if suffix else relative.name
    test_name = f"{stem}.test{suffix or _DEFAULT_TEST_EXTENSION}"

    base = _normalize(test_dir)
    return (base / relative.parent / test_name).as_posix()


def resolve_file_path(path: str | os.PathLike[str] | None) -> str:
    """Resolve *path* against the current working directory.

    Absolute paths are returned unchanged.

    Raises:
        InvalidArgumentError: If *path* is ``None``.
    """
    if path is None:
        raise InvalidArgumentError("path must not be None")
    text = os.fspath(path)
    if os.path.isabs(text):
        return text
    return os.path.normpath(os.path.join(os.getcwd(), text))
