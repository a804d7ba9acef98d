"""JavaScript / TypeScript / TSX AST extractors.

Extraction dispatches on :class:`NodeKind` through small handler tables.
A handler receives the node and its parent and returns ``None`` when the
node does not qualify (e.g. a method outside a class body).
"""

from __future__ import annotations

from collections.abc import Callable

from testgenie.parsing.languages.base import LanguageExtractor
from testgenie.parsing.syntax import NodeKind, SyntaxNode, walk
from testgenie.parsing.treesitter import ParsedFunction

ANONYMOUS = "anonymous"
"""Name given to functions without a usable identifier."""

UNNAMED_PARAM = "param"
"""Placeholder for destructured, defaulted or rest parameters."""

_PARAM_MODIFIERS = frozenset({"accessibility_modifier", "override_modifier"})


def _unquote(text: str) -> str:
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "\"'`":
        return text[1:-1]
    return text


def _is_default_export(node: SyntaxNode | None) -> bool:
    return (
        node is not None
        and node.kind is NodeKind.EXPORT_STATEMENT
        and node.has_token("default")
    )


def _is_named_export(node: SyntaxNode | None) -> bool:
    return (
        node is not None
        and node.kind is NodeKind.EXPORT_STATEMENT
        and not node.has_token("default")
    )


# ── Function details ─────────────────────────────────────────────


def _param_name(param: SyntaxNode) -> str:
    if param.kind is NodeKind.IDENTIFIER:
        return param.text
    if param.kind is NodeKind.PARAMETER:
        pattern = param.get_field("pattern")
        has_modifier = param.has_token("readonly") or any(
            c.type in _PARAM_MODIFIERS for c in param.children
        )
        if (
            pattern is not None
            and pattern.kind is NodeKind.IDENTIFIER
            and param.get_field("value") is None
            and not has_modifier
        ):
            return pattern.text
    return UNNAMED_PARAM


def _params(node: SyntaxNode) -> tuple[str, ...]:
    params_node = node.get_field("parameters")
    if params_node is None:
        # Arrow functions with a single bare parameter: `x => x`
        single = node.get_field("parameter")
        return () if single is None else (_param_name(single),)
    return tuple(_param_name(p) for p in params_node.named_children)


def _return_type(node: SyntaxNode) -> str | None:
    annotation = node.get_field("return_type")
    if annotation is None:
        return None
    text = annotation.text.strip()
    if text.startswith(":"):
        text = text[1:].strip()
    return text or None


def _function(node: SyntaxNode, name: str, *, is_exported: bool = False) -> ParsedFunction:
    return ParsedFunction(
        name=name,
        params=_params(node),
        return_type=_return_type(node),
        is_async=node.has_token("async"),
        is_exported=is_exported,
        start_line=node.start_line,
        end_line=node.end_line,
    )


def _identifier_text(node: SyntaxNode | None) -> str:
    if node is None or node.kind is not NodeKind.IDENTIFIER:
        return ANONYMOUS
    return node.text


# ── Function handlers ────────────────────────────────────────────


def _function_declaration(node: SyntaxNode, parent: SyntaxNode | None) -> ParsedFunction:
    return _function(
        node,
        _identifier_text(node.get_field("name")),
        is_exported=_is_named_export(parent),
    )


def _function_expression(node: SyntaxNode, parent: SyntaxNode | None) -> ParsedFunction | None:
    # Only `export default function () {}` counts; other function
    # expressions are values, not declarations.
    if not _is_default_export(parent):
        return None
    return _function(node, _identifier_text(node.get_field("name")))


def _arrow_function(node: SyntaxNode, parent: SyntaxNode | None) -> ParsedFunction:
    name = ANONYMOUS
    if (
        parent is not None
        and parent.kind is NodeKind.VARIABLE_DECLARATOR
        and parent.get_field("value") is node
    ):
        name = _identifier_text(parent.get_field("name"))
    return _function(node, name)


def _method_definition(node: SyntaxNode, parent: SyntaxNode | None) -> ParsedFunction | None:
    if parent is None or parent.kind is not NodeKind.CLASS_BODY:
        return None
    return _function(node, _identifier_text(node.get_field("name")))


FunctionHandler = Callable[[SyntaxNode, "SyntaxNode | None"], "ParsedFunction | None"]

FUNCTION_HANDLERS: dict[NodeKind, FunctionHandler] = {
    NodeKind.FUNCTION_DECLARATION: _function_declaration,
    NodeKind.FUNCTION_EXPRESSION: _function_expression,
    NodeKind.ARROW_FUNCTION: _arrow_function,
    NodeKind.METHOD_DEFINITION: _method_definition,
}


# ── Module handlers ──────────────────────────────────────────────


def _import_source(node: SyntaxNode) -> str | None:
    source = node.get_field("source")
    if source is None:
        source = next((c for c in node.children if c.kind is NodeKind.STRING), None)
    return None if source is None else _unquote(source.text)


def _export_names(node: SyntaxNode) -> list[str]:
    if node.has_token("default"):
        return ["default"]

    names: list[str] = []
    declaration = node.get_field("declaration")
    if declaration is not None and declaration.kind is NodeKind.FUNCTION_DECLARATION:
        name_node = declaration.get_field("name")
        if name_node is not None:
            names.append(name_node.text)

    for child in node.children:
        if child.kind is NodeKind.EXPORT_CLAUSE:
            for spec in child.children:
                if spec.kind is not NodeKind.EXPORT_SPECIFIER:
                    continue
                public = spec.get_field("alias") or spec.get_field("name")
                if public is not None:
                    names.append(_unquote(public.text))
        elif child.kind is NodeKind.NAMESPACE_EXPORT:
            alias = next(iter(child.named_children), None)
            if alias is not None:
                names.append(_unquote(alias.text))
    return names


class JavaScriptExtractor(LanguageExtractor):
    language = "javascript"

    def fallback_languages(self, file_path: str) -> tuple[str, ...]:
        # .jsx files sometimes carry TypeScript syntax; plain .js never retries
        return ("tsx",) if file_path.lower().endswith(".jsx") else ()

    def extract_functions(self, root: SyntaxNode) -> list[ParsedFunction]:
        results: list[ParsedFunction] = []
        for node, parent in walk(root):
            handler = FUNCTION_HANDLERS.get(node.kind)
            if handler is None:
                continue
            parsed = handler(node, parent)
            if parsed is not None:
                results.append(parsed)
        return results

    def extract_imports(self, root: SyntaxNode) -> list[str]:
        results: list[str] = []
        for node, _parent in walk(root):
            if node.kind is NodeKind.IMPORT_STATEMENT:
                source = _import_source(node)
                if source is not None:
                    results.append(source)
        return results

    def extract_exports(self, root: SyntaxNode) -> list[str]:
        results: list[str] = []
        for node, _parent in walk(root):
            if node.kind is NodeKind.EXPORT_STATEMENT:
                results.extend(_export_names(node))
        return results


class TypeScriptExtractor(JavaScriptExtractor):
    language = "typescript"


class TSXExtractor(JavaScriptExtractor):
    language = "tsx"
