"""
Source Code — tree-sitter backed tree and token provider for JavaScript.

Provides what the rule consumes from its host:
  • a parsed expression tree with parent back-references (js_nodes)
  • a token stream with "next token after X matching P" and
    "tokens between X and Y" queries
  • text extraction for any node or byte range

Parsing uses tree-sitter-javascript (JSX included).  All offsets are byte
offsets into the UTF-8 encoded source.
"""

import bisect
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

import tree_sitter_javascript as tsjs
from tree_sitter import Language, Parser, Node as TSNode

from optchain.js_nodes import (
    ArrayPattern, ArrowFunctionExpression, AssignmentExpression,
    CallExpression, ChainExpression, ForInStatement, ForOfStatement,
    FunctionExpression, Identifier, ImportDeclaration, ImportDefaultSpecifier,
    ImportNamespaceSpecifier, ImportSpecifier, LogicalExpression,
    MemberExpression, Node, ObjectPattern, Other, Program, Property,
    UpdateExpression, link_parents,
)

logger = logging.getLogger(__name__)

JS_LANGUAGE = Language(tsjs.language())
_parser = Parser(JS_LANGUAGE)


class SourceParseError(ValueError):
    """The source text is not syntactically valid JavaScript."""

    def __init__(self, message: str, line: int = 0, column: int = 0):
        super().__init__(message)
        self.line = line
        self.column = column


class SeparatorTokenError(RuntimeError):
    """An expected ``.`` or ``[`` token is missing between an object and its access.

    Means the tree handed to the rule is malformed; never recoverable.
    """


# ═══════════════════════════════════════════════════════════════════════
#  Tokens
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Token:
    kind: str               # ESTree-like token type
    value: str
    start: int
    end: int


# tree-sitter nodes that are one token even though they have children
_ATOMIC_TOKEN_TYPES = {"string", "regex", "number"}
_COMMENT_TYPES = {"comment", "html_comment", "hash_bang_line"}

_NAMED_TOKEN_KINDS = {
    "identifier": "Identifier",
    "property_identifier": "Identifier",
    "shorthand_property_identifier": "Identifier",
    "shorthand_property_identifier_pattern": "Identifier",
    "statement_identifier": "Identifier",
    "undefined": "Identifier",
    "private_property_identifier": "PrivateIdentifier",
    "number": "Numeric",
    "string": "String",
    "regex": "RegularExpression",
    "true": "Boolean",
    "false": "Boolean",
    "null": "Null",
    "this": "Keyword",
    "super": "Keyword",
    "optional_chain": "Punctuator",
    "jsx_text": "JSXText",
}


def _token_kind(ts_node: TSNode, value: str) -> str:
    kind = _NAMED_TOKEN_KINDS.get(ts_node.type)
    if kind:
        return kind
    if ts_node.is_named:
        return "Template" if ts_node.type == "string_fragment" else ts_node.type
    if value[:1].isalpha() or value[:1] in ("_", "$"):
        return "Keyword"
    return "Punctuator"


# ═══════════════════════════════════════════════════════════════════════
#  Source code
# ═══════════════════════════════════════════════════════════════════════

class SourceCode:
    """A parsed JavaScript file: converted tree, tokens, and text access."""

    def __init__(self, text: str, source: bytes, tree):
        self.text = text
        self.source = source
        self.tree = tree
        self.tokens_list: List[Token] = []
        self._token_starts: List[int] = []
        self._collect_tokens(tree.root_node)
        self._token_starts = [t.start for t in self.tokens_list]
        self.ast: Program = _Converter(source).convert_program(tree.root_node)
        link_parents(self.ast)

    @classmethod
    def from_text(cls, text: str) -> "SourceCode":
        """Parse ``text``; raises SourceParseError when it contains syntax errors."""
        source = text.encode("utf-8")
        tree = _parser.parse(source)
        if tree.root_node.has_error:
            bad = _first_error(tree.root_node)
            line, column = (bad.start_point[0] + 1, bad.start_point[1]) if bad else (0, 0)
            raise SourceParseError(f"Parsing error at line {line}, column {column}",
                                   line, column)
        return cls(text, source, tree)

    # ────────────────────────────────────────────────────────────────
    #  Text
    # ────────────────────────────────────────────────────────────────

    def get_text(self, node: Node, outer: bool = False) -> str:
        """Source text of ``node``; ``outer`` includes grouping parentheses."""
        start, end = node.outer_range if outer else (node.start, node.end)
        return self.slice(start, end)

    def slice(self, start: int, end: int) -> str:
        return self.source[start:end].decode("utf-8", errors="replace")

    # ────────────────────────────────────────────────────────────────
    #  Token queries
    # ────────────────────────────────────────────────────────────────

    def tokens(self, node: Node) -> List[Token]:
        """Tokens inside the node's own range (outer parentheses excluded)."""
        return self.tokens_in_range(node.start, node.end)

    def tokens_in_range(self, start: int, end: int) -> List[Token]:
        i = bisect.bisect_left(self._token_starts, start)
        result = []
        while i < len(self.tokens_list) and self.tokens_list[i].end <= end:
            result.append(self.tokens_list[i])
            i += 1
        return result

    def token_after(self, node: Node,
                    predicate: Optional[Callable[[Token], bool]] = None) -> Optional[Token]:
        """First token starting at or after the end of ``node`` that matches."""
        i = bisect.bisect_left(self._token_starts, node.end)
        for token in self.tokens_list[i:]:
            if predicate is None or predicate(token):
                return token
        return None

    def tokens_between(self, left: Node, right: Token) -> List[Token]:
        """Tokens strictly between the end of ``left`` and the start of ``right``."""
        return self.tokens_in_range(left.end, right.start)

    def _collect_tokens(self, root: TSNode) -> None:
        stack = [root]
        while stack:
            ts_node = stack.pop()
            if ts_node.type in _COMMENT_TYPES:
                continue
            if ts_node.child_count == 0 or ts_node.type in _ATOMIC_TOKEN_TYPES:
                if ts_node.end_byte > ts_node.start_byte:
                    value = self.slice(ts_node.start_byte, ts_node.end_byte)
                    self.tokens_list.append(Token(_token_kind(ts_node, value), value,
                                                  ts_node.start_byte, ts_node.end_byte))
                continue
            stack.extend(reversed(ts_node.children))


def _first_error(root: TSNode) -> Optional[TSNode]:
    stack = [root]
    while stack:
        ts_node = stack.pop()
        if ts_node.type == "ERROR" or ts_node.is_missing:
            return ts_node
        if ts_node.has_error:
            stack.extend(reversed(ts_node.children))
    return None


# ═══════════════════════════════════════════════════════════════════════
#  CST → node model conversion
# ═══════════════════════════════════════════════════════════════════════

_LOGICAL_OPERATORS = {"&&", "||", "??"}
_FUNCTION_EXPRESSION_TYPES = {"function_expression", "function", "generator_function"}
_IDENTIFIER_TYPES = {
    "identifier", "property_identifier", "shorthand_property_identifier",
    "shorthand_property_identifier_pattern", "statement_identifier", "undefined",
}


class _Converter:
    """Builds js_nodes from a tree-sitter tree (ESTree shape, no parentheses)."""

    def __init__(self, source: bytes):
        self.source = source

    def convert_program(self, root: TSNode) -> Program:
        return Program(**self._pos(root), body=self._named(root))

    # ────────────────────────────────────────────────────────────────
    #  Helpers
    # ────────────────────────────────────────────────────────────────

    def _pos(self, ts_node: TSNode) -> Dict[str, int]:
        return {
            "start": ts_node.start_byte,
            "end": ts_node.end_byte,
            "line": ts_node.start_point[0] + 1,
            "column": self._column(ts_node.start_byte, ts_node.start_point[1]),
        }

    def _column(self, start_byte: int, byte_column: int) -> int:
        """Character column from tree-sitter's byte column."""
        prefix = self.source[start_byte - byte_column:start_byte]
        if prefix.isascii():
            return byte_column
        return len(prefix.decode("utf-8", errors="replace"))

    def _text(self, ts_node: TSNode) -> str:
        return self.source[ts_node.start_byte:ts_node.end_byte].decode("utf-8", errors="replace")

    def _named(self, ts_node: Optional[TSNode]) -> List[Node]:
        if ts_node is None:
            return []
        return [self.convert(c) for c in ts_node.named_children if c.type not in _COMMENT_TYPES]

    def _field(self, ts_node: TSNode, name: str) -> Optional[Node]:
        child = ts_node.child_by_field_name(name)
        return self.convert(child) if child is not None else None

    def _chain_object(self, ts_node: TSNode, name: str):
        """Convert an object/callee slot, unwrapping a chain it continues.

        Returns (node, continues_chain).
        """
        obj = self._field(ts_node, name)
        if isinstance(obj, ChainExpression) and not obj.parenthesized:
            return obj.expression, True
        return obj, False

    def _maybe_chain(self, ts_node: TSNode, node: Node, in_chain: bool) -> Node:
        if in_chain or getattr(node, "optional", False):
            return ChainExpression(**self._pos(ts_node), expression=node)
        return node

    # ────────────────────────────────────────────────────────────────
    #  Dispatch
    # ────────────────────────────────────────────────────────────────

    def convert(self, ts_node: TSNode) -> Node:
        t = ts_node.type

        if t == "parenthesized_expression":
            inner = [c for c in ts_node.named_children if c.type not in _COMMENT_TYPES]
            if len(inner) == 1:
                node = self.convert(inner[0])
                node.parenthesized = True
                node.outer_start = ts_node.start_byte
                node.outer_end = ts_node.end_byte
                return node
            return Other(**self._pos(ts_node), ts_type=t, children=self._named(ts_node))

        if t in _IDENTIFIER_TYPES:
            return Identifier(**self._pos(ts_node), name=self._text(ts_node))

        if t in ("member_expression", "subscript_expression"):
            computed = t == "subscript_expression"
            obj, in_chain = self._chain_object(ts_node, "object")
            prop = self._field(ts_node, "index" if computed else "property")
            optional = ts_node.child_by_field_name("optional_chain") is not None
            node = MemberExpression(**self._pos(ts_node), object=obj, property=prop,
                                    computed=computed, optional=optional)
            return self._maybe_chain(ts_node, node, in_chain)

        if t == "call_expression":
            args = ts_node.child_by_field_name("arguments")
            if args is not None and args.type == "template_string":
                return Other(**self._pos(ts_node), ts_type="tagged_template",
                             children=self._named(ts_node))
            callee, in_chain = self._chain_object(ts_node, "function")
            optional = ts_node.child_by_field_name("optional_chain") is not None
            node = CallExpression(**self._pos(ts_node), callee=callee,
                                  arguments=self._named(args), optional=optional)
            return self._maybe_chain(ts_node, node, in_chain)

        if t == "binary_expression":
            operator = ts_node.child_by_field_name("operator")
            if operator is not None and operator.type in _LOGICAL_OPERATORS:
                return LogicalExpression(**self._pos(ts_node), operator=operator.type,
                                         left=self._field(ts_node, "left"),
                                         right=self._field(ts_node, "right"))

        if t in ("assignment_expression", "augmented_assignment_expression"):
            operator = ts_node.child_by_field_name("operator")
            return AssignmentExpression(
                **self._pos(ts_node),
                operator=operator.type if operator is not None else "=",
                left=self._field(ts_node, "left"),
                right=self._field(ts_node, "right"),
            )

        if t == "update_expression":
            operator = ts_node.child_by_field_name("operator")
            argument = ts_node.child_by_field_name("argument")
            prefix = (operator is not None and argument is not None
                      and operator.start_byte < argument.start_byte)
            return UpdateExpression(**self._pos(ts_node),
                                    operator=operator.type if operator is not None else "++",
                                    argument=self.convert(argument) if argument is not None else None,
                                    prefix=prefix)

        if t == "arrow_function":
            single = ts_node.child_by_field_name("parameter")
            params = [self.convert(single)] if single is not None else \
                self._named(ts_node.child_by_field_name("parameters"))
            return ArrowFunctionExpression(**self._pos(ts_node), params=params,
                                           body=self._field(ts_node, "body"))

        if t in _FUNCTION_EXPRESSION_TYPES:
            return FunctionExpression(**self._pos(ts_node),
                                      params=self._named(ts_node.child_by_field_name("parameters")),
                                      body=self._field(ts_node, "body"))

        if t == "object_pattern":
            return ObjectPattern(**self._pos(ts_node), properties=self._named(ts_node))

        if t == "array_pattern":
            return ArrayPattern(**self._pos(ts_node), elements=self._named(ts_node))

        if t in ("pair", "pair_pattern"):
            return Property(**self._pos(ts_node), key=self._field(ts_node, "key"),
                            value=self._field(ts_node, "value"))

        if t == "for_in_statement":
            operator = ts_node.child_by_field_name("operator")
            cls = ForOfStatement if operator is not None and operator.type == "of" else ForInStatement
            return cls(**self._pos(ts_node), left=self._field(ts_node, "left"),
                       right=self._field(ts_node, "right"), body=self._field(ts_node, "body"))

        if t == "import_statement":
            return self._convert_import(ts_node)

        return Other(**self._pos(ts_node), ts_type=t, children=self._named(ts_node))

    # ────────────────────────────────────────────────────────────────
    #  Imports
    # ────────────────────────────────────────────────────────────────

    def _convert_import(self, ts_node: TSNode) -> ImportDeclaration:
        source_node = ts_node.child_by_field_name("source")
        source = self._text(source_node)[1:-1] if source_node is not None else ""

        specifiers: List[Node] = []
        clauses = [c for c in ts_node.named_children if c.type == "import_clause"]
        for clause in clauses:
            for child in clause.named_children:
                if child.type == "identifier":
                    specifiers.append(ImportDefaultSpecifier(
                        **self._pos(child), local=self.convert(child)))
                elif child.type == "namespace_import":
                    local = next((c for c in child.named_children if c.type == "identifier"), None)
                    if local is not None:
                        specifiers.append(ImportNamespaceSpecifier(
                            **self._pos(child), local=self.convert(local)))
                elif child.type == "named_imports":
                    specifiers.extend(self._named_imports(child))

        return ImportDeclaration(**self._pos(ts_node), source=source, specifiers=specifiers)

    def _named_imports(self, ts_node: TSNode) -> List[Node]:
        result: List[Node] = []
        for spec in ts_node.named_children:
            if spec.type != "import_specifier":
                continue
            name = spec.child_by_field_name("name")
            alias = spec.child_by_field_name("alias")
            local = alias if alias is not None else name
            if local is None:
                continue
            result.append(ImportSpecifier(
                **self._pos(spec),
                local=Identifier(**self._pos(local), name=self._text(local)),
                imported=self._text(name) if name is not None else "",
            ))
        return result
