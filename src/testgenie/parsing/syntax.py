"""Typed syntax tree used by the extractors.

Tree-sitter nodes are converted once into :class:`SyntaxNode` objects tagged
with a :class:`NodeKind`.  Extractors dispatch on the kind, so they can be
exercised against hand-built trees without a parser.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

    import tree_sitter


class NodeKind(Enum):
    """Node categories the extractors care about."""

    PROGRAM = "program"
    FUNCTION_DECLARATION = "function_declaration"
    FUNCTION_EXPRESSION = "function_expression"
    ARROW_FUNCTION = "arrow_function"
    METHOD_DEFINITION = "method_definition"
    CLASS_BODY = "class_body"
    VARIABLE_DECLARATOR = "variable_declarator"
    FORMAL_PARAMETERS = "formal_parameters"
    PARAMETER = "parameter"
    IDENTIFIER = "identifier"
    STRING = "string"
    IMPORT_STATEMENT = "import_statement"
    EXPORT_STATEMENT = "export_statement"
    EXPORT_CLAUSE = "export_clause"
    EXPORT_SPECIFIER = "export_specifier"
    NAMESPACE_EXPORT = "namespace_export"
    COMMENT = "comment"
    ERROR = "error"
    OTHER = "other"
    TOKEN = "token"
    """Anonymous grammar tokens such as ``async``, ``export`` or ``default``."""


# Named tree-sitter node types (JavaScript, TypeScript and TSX grammars)
_KIND_BY_TYPE: dict[str, NodeKind] = {
    "program": NodeKind.PROGRAM,
    "function_declaration": NodeKind.FUNCTION_DECLARATION,
    "generator_function_declaration": NodeKind.FUNCTION_DECLARATION,
    "function_expression": NodeKind.FUNCTION_EXPRESSION,
    "function": NodeKind.FUNCTION_EXPRESSION,
    "generator_function": NodeKind.FUNCTION_EXPRESSION,
    "arrow_function": NodeKind.ARROW_FUNCTION,
    "method_definition": NodeKind.METHOD_DEFINITION,
    "class_body": NodeKind.CLASS_BODY,
    "variable_declarator": NodeKind.VARIABLE_DECLARATOR,
    "formal_parameters": NodeKind.FORMAL_PARAMETERS,
    "required_parameter": NodeKind.PARAMETER,
    "optional_parameter": NodeKind.PARAMETER,
    "identifier": NodeKind.IDENTIFIER,
    "property_identifier": NodeKind.IDENTIFIER,
    "private_property_identifier": NodeKind.IDENTIFIER,
    "string": NodeKind.STRING,
    "import_statement": NodeKind.IMPORT_STATEMENT,
    "export_statement": NodeKind.EXPORT_STATEMENT,
    "export_clause": NodeKind.EXPORT_CLAUSE,
    "export_specifier": NodeKind.EXPORT_SPECIFIER,
    "namespace_export": NodeKind.NAMESPACE_EXPORT,
    "comment": NodeKind.COMMENT,
    "ERROR": NodeKind.ERROR,
}


def kind_for(node_type: str, *, named: bool = True) -> NodeKind:
    """Return the NodeKind for a tree-sitter node type."""
    if not named:
        return NodeKind.TOKEN
    return _KIND_BY_TYPE.get(node_type, NodeKind.OTHER)


@dataclass(eq=False)
class SyntaxNode:
    """A node of the typed syntax tree.

    Text is sliced lazily from the shared *source* buffer, so converting a
    tree does not copy the file once per nesting level.
    """

    kind: NodeKind
    type: str
    children: tuple[SyntaxNode, ...] = ()
    fields: dict[str, SyntaxNode] = field(default_factory=dict)
    start_line: int = 0
    """1-based first line, or 0 when no position is known."""
    end_line: int = 0
    """1-based last line, or 0 when no position is known."""
    source: bytes = b""
    start_byte: int = 0
    end_byte: int | None = None

    @classmethod
    def build(
        cls,
        kind: NodeKind,
        text: str = "",
        *,
        children: tuple[SyntaxNode, ...] = (),
        fields: dict[str, SyntaxNode] | None = None,
        type: str | None = None,  # noqa: A002
        start_line: int = 0,
        end_line: int = 0,
    ) -> SyntaxNode:
        """Construct a node by hand, e.g. for tests.

        *fields* values are appended to *children* when not already present.
        """
        field_map = dict(fields or {})
        all_children = list(children)
        all_children.extend(
            node for node in field_map.values() if not any(node is c for c in all_children)
        )
        return cls(
            kind=kind,
            type=type or kind.value,
            children=tuple(all_children),
            fields=field_map,
            start_line=start_line,
            end_line=end_line,
            source=text.encode("utf-8"),
        )

    @classmethod
    def token(cls, value: str) -> SyntaxNode:
        """Construct an anonymous token node such as ``async`` or ``default``."""
        return cls.build(NodeKind.TOKEN, value, type=value)

    @property
    def text(self) -> str:
        end = len(self.source) if self.end_byte is None else self.end_byte
        return self.source[self.start_byte : end].decode("utf-8", errors="replace")

    def get_field(self, name: str) -> SyntaxNode | None:
        """Return the child stored under grammar field *name*."""
        return self.fields.get(name)

    def has_token(self, value: str) -> bool:
        """Return True if an anonymous child token equals *value*."""
        return any(c.kind is NodeKind.TOKEN and c.type == value for c in self.children)

    @property
    def named_children(self) -> list[SyntaxNode]:
        return [c for c in self.children if c.kind not in (NodeKind.TOKEN, NodeKind.COMMENT)]


def _convert(node: tree_sitter.Node, children: list[SyntaxNode], source: bytes) -> SyntaxNode:
    fields: dict[str, SyntaxNode] = {}
    for index, child in enumerate(children):
        name = node.field_name_for_child(index)
        if name and name not in fields:
            fields[name] = child
    return SyntaxNode(
        kind=kind_for(node.type, named=node.is_named),
        type=node.type,
        children=tuple(children),
        fields=fields,
        start_line=node.start_point.row + 1,
        end_line=node.end_point.row + 1,
        source=source,
        start_byte=node.start_byte,
        end_byte=node.end_byte,
    )


def from_tree_sitter(root: tree_sitter.Node, source: bytes) -> SyntaxNode:
    """Convert a tree-sitter tree into a SyntaxNode tree.

    The walk is iterative; deeply nested expressions do not hit the
    interpreter recursion limit.
    """
    pending: list[list[SyntaxNode]] = [[]]
    work: list[tuple[tree_sitter.Node, bool]] = [(root, False)]
    while work:
        node, expanded = work.pop()
        if expanded:
            children = pending.pop()
            pending[-1].append(_convert(node, children, source))
            continue
        work.append((node, True))
        pending.append([])
        work.extend((child, False) for child in reversed(node.children))
    return pending[0][0]


def walk(root: SyntaxNode) -> Iterator[tuple[SyntaxNode, SyntaxNode | None]]:
    """Yield ``(node, parent)`` pairs in source (pre-)order."""
    stack: list[tuple[SyntaxNode, SyntaxNode | None]] = [(root, None)]
    while stack:
        node, parent = stack.pop()
        yield node, parent
        stack.extend((child, node) for child in reversed(node.children))
