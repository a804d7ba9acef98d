"""Tests for tree-sitter parsing and JavaScript/TypeScript extraction."""

from __future__ import annotations

from pathlib import Path

import pytest

from testgenie.parsing.languages import extract_from_file, extract_from_source, get_extractor
from testgenie.parsing.languages.javascript import (
    JavaScriptExtractor,
    TSXExtractor,
    TypeScriptExtractor,
)
from testgenie.parsing.treesitter import (
    SUPPORTED_LANGUAGES,
    ParsedFunction,
    ParseError,
    describe_errors,
    detect_language,
    has_parse_errors,
    parse_code,
)

# ---------------------------------------------------------------------------
# treesitter.py — core wrapper tests
# ---------------------------------------------------------------------------


class TestDetectLanguage:
    def test_javascript(self) -> None:
        assert detect_language("app.js") == "javascript"
        assert detect_language("app.jsx") == "javascript"

    def test_typescript(self) -> None:
        assert detect_language("src/app.ts") == "typescript"

    def test_tsx(self) -> None:
        assert detect_language("component.tsx") == "tsx"

    def test_unknown(self) -> None:
        assert detect_language("main.py") is None
        assert detect_language("Makefile") is None


class TestParseCode:
    def test_parse_produces_tree(self) -> None:
        tree = parse_code(b"const x = 1;", "javascript")
        assert tree.root_node.type == "program"
        assert not has_parse_errors(tree.root_node)

    def test_parse_error_detection(self) -> None:
        tree = parse_code(b"function (broken {", "javascript")
        assert has_parse_errors(tree.root_node)
        assert describe_errors(tree.root_node).startswith("syntax error")

    def test_unsupported_language(self) -> None:
        with pytest.raises(ValueError, match="Unsupported language"):
            parse_code(b"x = 1", "python")

    def test_supported_languages(self) -> None:
        assert {"javascript", "typescript", "tsx"} == SUPPORTED_LANGUAGES


class TestGetExtractor:
    def test_known_languages(self) -> None:
        assert isinstance(get_extractor("javascript"), JavaScriptExtractor)
        assert isinstance(get_extractor("typescript"), TypeScriptExtractor)
        assert isinstance(get_extractor("tsx"), TSXExtractor)

    def test_unknown_language(self) -> None:
        with pytest.raises(ValueError, match="No extractor"):
            get_extractor("cobol")


# ---------------------------------------------------------------------------
# Function extraction
# ---------------------------------------------------------------------------


class TestFunctions:
    def test_exported_async_function(self) -> None:
        parsed = extract_from_source("export async function foo(a, b) { }", "src/foo.js")

        assert parsed.file_path == "src/foo.js"
        assert parsed.functions == (
            ParsedFunction(
                name="foo",
                params=("a", "b"),
                return_type=None,
                is_async=True,
                is_exported=True,
                start_line=1,
                end_line=1,
            ),
        )
        assert parsed.exports == ("foo",)

    def test_plain_function_is_not_exported(self) -> None:
        parsed = extract_from_source("function helper() {}\n", "a.js")
        (fn,) = parsed.functions
        assert fn.name == "helper"
        assert fn.is_exported is False
        assert fn.is_async is False

    def test_default_exported_anonymous_function(self) -> None:
        parsed = extract_from_source("export default function () {}\n", "a.js")
        assert [fn.name for fn in parsed.functions] == ["anonymous"]
        assert parsed.functions[0].is_exported is False
        assert parsed.exports == ("default",)

    def test_arrow_function_takes_declarator_name(self) -> None:
        parsed = extract_from_source("const add = (a, b) => a + b;\n", "a.js")
        (fn,) = parsed.functions
        assert fn.name == "add"
        assert fn.params == ("a", "b")

    def test_exported_arrow_function_is_not_marked_exported(self) -> None:
        parsed = extract_from_source("export const add = (a, b) => a + b;\n", "a.ts")
        (fn,) = parsed.functions
        assert fn.name == "add"
        assert fn.is_exported is False

    def test_inline_arrow_is_anonymous(self) -> None:
        parsed = extract_from_source("items.map(item => item.id);\n", "a.js")
        (fn,) = parsed.functions
        assert fn.name == "anonymous"
        assert fn.params == ("item",)

    def test_function_expression_values_are_ignored(self) -> None:
        parsed = extract_from_source("const f = function () {};\n", "a.js")
        assert parsed.functions == ()

    def test_line_numbers_are_one_based(self) -> None:
        source = "\n\nfunction later() {\n  return 1;\n}\n"
        (fn,) = extract_from_source(source, "a.js").functions
        assert (fn.start_line, fn.end_line) == (3, 5)

    def test_non_identifier_params(self) -> None:
        source = "function f({ a }, [b], c = 1, d, ...rest) {}\n"
        (fn,) = extract_from_source(source, "a.js").functions
        assert fn.params == ("param", "param", "param", "d", "param")

    def test_nested_functions_in_source_order(self) -> None:
        source = "function outer() {\n  function inner() {}\n  const cb = () => {};\n}\n"
        names = [fn.name for fn in extract_from_source(source, "a.js").functions]
        assert names == ["outer", "inner", "cb"]


class TestClassMethods:
    SOURCE = """\
export class Service {
  @Inject() private readonly repo: Repo;

  constructor(private readonly db: Db, name: string) {}

  async load(id?: string, ...rest: string[]): Promise<void> {}

  static create({ a }: Opts = {}) {
    return new Service(a);
  }

  [Symbol.iterator]() {}
}
"""

    def test_methods_are_extracted(self) -> None:
        parsed = extract_from_source(self.SOURCE, "service.ts")
        names = [fn.name for fn in parsed.functions]
        assert names == ["constructor", "load", "create", "anonymous"]
        assert all(fn.is_exported is False for fn in parsed.functions)

    def test_method_details(self) -> None:
        functions = {fn.name: fn for fn in extract_from_source(self.SOURCE, "service.ts").functions}

        assert functions["constructor"].params == ("param", "name")
        assert functions["load"].is_async is True
        assert functions["load"].params == ("id", "param")
        assert functions["load"].return_type == "Promise<void>"
        assert functions["create"].params == ("param",)

    def test_object_literal_methods_are_ignored(self) -> None:
        parsed = extract_from_source("const api = { get() {} };\n", "a.js")
        assert parsed.functions == ()


class TestTypeScript:
    def test_typed_arrow_function(self) -> None:
        source = "export const sum = (a: number, b: number): number => a + b;\n"
        (fn,) = extract_from_source(source, "math.ts").functions
        assert fn.params == ("a", "b")
        assert fn.return_type == "number"

    def test_function_return_type(self) -> None:
        source = "export function greet(name: string): string { return name; }\n"
        (fn,) = extract_from_source(source, "greet.ts").functions
        assert fn.return_type == "string"
        assert fn.is_exported is True

    def test_tsx_component(self) -> None:
        source = (
            "export default function App({ items }: Props) {\n"
            "  return <ul>{items?.map((i) => <li key={i}>{i ?? 0}</li>)}</ul>;\n"
            "}\n"
        )
        parsed = extract_from_source(source, "App.tsx")
        assert [fn.name for fn in parsed.functions] == ["App", "anonymous"]
        assert parsed.exports == ("default",)

    def test_jsx_file(self) -> None:
        source = "export const Card = ({ title, ...rest }) => <div {...rest}>{title}</div>;\n"
        (fn,) = extract_from_source(source, "Card.jsx").functions
        assert fn.name == "Card"
        assert fn.params == ("param",)

    def test_jsx_file_with_type_annotations_falls_back(self) -> None:
        source = "function f(a: number): string { return String(a); }\n"
        (fn,) = extract_from_source(source, "Legacy.jsx").functions
        assert fn.params == ("a",)
        assert fn.return_type == "string"

    @pytest.mark.parametrize(
        "source",
        [
            "function f(a: number): string { return String(a); }\n",
            "function f(a?.b) {}\n",
        ],
    )
    def test_js_file_rejects_typescript_syntax(self, source: str) -> None:
        with pytest.raises(ParseError):
            extract_from_source(source, "legacy.js")


# ---------------------------------------------------------------------------
# Imports and exports
# ---------------------------------------------------------------------------


class TestImports:
    def test_all_import_forms(self) -> None:
        source = """\
import React from 'react';
import { a, b as c } from "./utils";
import * as path from 'node:path';
import './side-effect.css';
"""
        parsed = extract_from_source(source, "a.js")
        assert parsed.imports == ("react", "./utils", "node:path", "./side-effect.css")

    def test_type_imports(self) -> None:
        parsed = extract_from_source("import type { User } from './types';\n", "a.ts")
        assert parsed.imports == ("./types",)

    def test_dynamic_import_is_not_recorded(self) -> None:
        parsed = extract_from_source("const m = import('./lazy');\n", "a.js")
        assert parsed.imports == ()


class TestExports:
    def test_specifiers_use_public_names(self) -> None:
        source = """\
function local() {}
const x = 1;
export { local, x as renamed };
export * as ns from './ns';
export function pub() {}
"""
        parsed = extract_from_source(source, "a.js")
        assert parsed.exports == ("local", "renamed", "ns", "pub")

    def test_default_expression_export(self) -> None:
        parsed = extract_from_source("export default { a: 1 };\n", "a.js")
        assert parsed.exports == ("default",)

    def test_exported_variable_is_not_recorded(self) -> None:
        parsed = extract_from_source("export const answer = 42;\n", "a.js")
        assert parsed.exports == ()


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TestParseErrors:
    def test_syntax_error_raises_with_path(self) -> None:
        with pytest.raises(ParseError) as exc_info:
            extract_from_source("function (broken {", "src/broken.js")

        assert exc_info.value.file_path == "src/broken.js"
        assert "syntax error" in exc_info.value.message
        assert "src/broken.js" in str(exc_info.value)

    def test_unsupported_extension(self) -> None:
        with pytest.raises(ParseError, match="unsupported file type"):
            extract_from_source("x = 1", "script.py")

    def test_extract_from_file(self, tmp_path: Path) -> None:
        f = tmp_path / "mod.ts"
        f.write_text("export function a(): void {}\n", encoding="utf-8")
        parsed = extract_from_file(str(f))
        assert parsed.file_path == str(f)
        assert parsed.exports == ("a",)

    def test_extract_from_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            extract_from_file(str(tmp_path / "missing.js"))
