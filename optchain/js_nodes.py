"""
JS Node Model — the closed set of syntax kinds the rule reasons about.

tree-sitter produces a concrete syntax tree; the rule needs an abstract one
with ESTree semantics:
  • grouping parentheses do not exist as nodes (the wrapped node remembers
    them via ``parenthesized`` / ``outer_start`` / ``outer_end``)
  • an expression with a ``?.`` link on its object/callee spine is wrapped
    in a ``ChainExpression``
  • every node knows its parent

Only the kinds that dispatch points care about get their own class.
Everything else becomes ``Other`` and keeps its children so the traversal
still reaches nested accesses.
"""

from dataclasses import dataclass, field
from typing import Callable, ClassVar, Iterator, List, Optional, Tuple


# ═══════════════════════════════════════════════════════════════════════
#  Base node
# ═══════════════════════════════════════════════════════════════════════

@dataclass(eq=False)
class Node:
    """Common position and bookkeeping for every node kind."""
    kind: ClassVar[str] = "Node"
    child_fields: ClassVar[Tuple[str, ...]] = ()

    start: int              # byte offset, excluding grouping parentheses
    end: int                # byte offset (exclusive)
    line: int               # 1-indexed
    column: int             # 0-indexed, in characters

    parent: Optional["Node"] = field(default=None, init=False, repr=False)
    parenthesized: bool = field(default=False, init=False, repr=False)
    outer_start: int = field(default=-1, init=False, repr=False)
    outer_end: int = field(default=-1, init=False, repr=False)

    @property
    def outer_range(self) -> Tuple[int, int]:
        """Range including any grouping parentheses around the node."""
        if self.parenthesized:
            return self.outer_start, self.outer_end
        return self.start, self.end


# ═══════════════════════════════════════════════════════════════════════
#  Expressions
# ═══════════════════════════════════════════════════════════════════════

@dataclass(eq=False)
class Program(Node):
    kind: ClassVar[str] = "Program"
    child_fields: ClassVar[Tuple[str, ...]] = ("body",)

    body: List[Node] = field(default_factory=list)


@dataclass(eq=False)
class Identifier(Node):
    kind: ClassVar[str] = "Identifier"

    name: str = ""


@dataclass(eq=False)
class MemberExpression(Node):
    """``object.property`` or ``object[property]`` (``computed``)."""
    kind: ClassVar[str] = "MemberExpression"
    child_fields: ClassVar[Tuple[str, ...]] = ("object", "property")

    object: Node = None
    property: Node = None
    computed: bool = False
    optional: bool = False


@dataclass(eq=False)
class CallExpression(Node):
    kind: ClassVar[str] = "CallExpression"
    child_fields: ClassVar[Tuple[str, ...]] = ("callee", "arguments")

    callee: Node = None
    arguments: List[Node] = field(default_factory=list)
    optional: bool = False


@dataclass(eq=False)
class ChainExpression(Node):
    """Wrapper around the outermost link of an optional chain."""
    kind: ClassVar[str] = "ChainExpression"
    child_fields: ClassVar[Tuple[str, ...]] = ("expression",)

    expression: Node = None


@dataclass(eq=False)
class LogicalExpression(Node):
    kind: ClassVar[str] = "LogicalExpression"
    child_fields: ClassVar[Tuple[str, ...]] = ("left", "right")

    operator: str = "&&"
    left: Node = None
    right: Node = None


@dataclass(eq=False)
class AssignmentExpression(Node):
    kind: ClassVar[str] = "AssignmentExpression"
    child_fields: ClassVar[Tuple[str, ...]] = ("left", "right")

    operator: str = "="
    left: Node = None
    right: Node = None


@dataclass(eq=False)
class UpdateExpression(Node):
    kind: ClassVar[str] = "UpdateExpression"
    child_fields: ClassVar[Tuple[str, ...]] = ("argument",)

    operator: str = "++"
    argument: Node = None
    prefix: bool = False


@dataclass(eq=False)
class ArrowFunctionExpression(Node):
    kind: ClassVar[str] = "ArrowFunctionExpression"
    child_fields: ClassVar[Tuple[str, ...]] = ("params", "body")

    params: List[Node] = field(default_factory=list)
    body: Node = None


@dataclass(eq=False)
class FunctionExpression(Node):
    kind: ClassVar[str] = "FunctionExpression"
    child_fields: ClassVar[Tuple[str, ...]] = ("params", "body")

    params: List[Node] = field(default_factory=list)
    body: Node = None


# ═══════════════════════════════════════════════════════════════════════
#  Patterns and statements
# ═══════════════════════════════════════════════════════════════════════

@dataclass(eq=False)
class ObjectPattern(Node):
    kind: ClassVar[str] = "ObjectPattern"
    child_fields: ClassVar[Tuple[str, ...]] = ("properties",)

    properties: List[Node] = field(default_factory=list)


@dataclass(eq=False)
class ArrayPattern(Node):
    kind: ClassVar[str] = "ArrayPattern"
    child_fields: ClassVar[Tuple[str, ...]] = ("elements",)

    elements: List[Node] = field(default_factory=list)


@dataclass(eq=False)
class Property(Node):
    """``key: value`` inside an object literal or an object pattern."""
    kind: ClassVar[str] = "Property"
    child_fields: ClassVar[Tuple[str, ...]] = ("key", "value")

    key: Node = None
    value: Node = None


@dataclass(eq=False)
class ForInStatement(Node):
    kind: ClassVar[str] = "ForInStatement"
    child_fields: ClassVar[Tuple[str, ...]] = ("left", "right", "body")

    left: Node = None
    right: Node = None
    body: Node = None


@dataclass(eq=False)
class ForOfStatement(Node):
    kind: ClassVar[str] = "ForOfStatement"
    child_fields: ClassVar[Tuple[str, ...]] = ("left", "right", "body")

    left: Node = None
    right: Node = None
    body: Node = None


@dataclass(eq=False)
class ImportDeclaration(Node):
    kind: ClassVar[str] = "ImportDeclaration"
    child_fields: ClassVar[Tuple[str, ...]] = ("specifiers",)

    source: str = ""        # module specifier without quotes
    specifiers: List[Node] = field(default_factory=list)


@dataclass(eq=False)
class ImportDefaultSpecifier(Node):
    kind: ClassVar[str] = "ImportDefaultSpecifier"
    child_fields: ClassVar[Tuple[str, ...]] = ("local",)

    local: Identifier = None


@dataclass(eq=False)
class ImportNamespaceSpecifier(Node):
    kind: ClassVar[str] = "ImportNamespaceSpecifier"
    child_fields: ClassVar[Tuple[str, ...]] = ("local",)

    local: Identifier = None


@dataclass(eq=False)
class ImportSpecifier(Node):
    kind: ClassVar[str] = "ImportSpecifier"
    child_fields: ClassVar[Tuple[str, ...]] = ("local",)

    local: Identifier = None
    imported: str = ""


@dataclass(eq=False)
class Other(Node):
    """Any syntax kind without dedicated handling (keeps tree-sitter's name)."""
    kind: ClassVar[str] = "Other"
    child_fields: ClassVar[Tuple[str, ...]] = ("children",)

    ts_type: str = ""
    children: List[Node] = field(default_factory=list)


FUNCTION_KINDS = (ArrowFunctionExpression, FunctionExpression)
PATTERN_KINDS = (ObjectPattern, ArrayPattern)


# ═══════════════════════════════════════════════════════════════════════
#  Tree helpers
# ═══════════════════════════════════════════════════════════════════════

def iter_child_nodes(node: Node) -> Iterator[Node]:
    """Yield direct children in source order."""
    for name in node.child_fields:
        value = getattr(node, name)
        if isinstance(value, list):
            for item in value:
                if item is not None:
                    yield item
        elif value is not None:
            yield value


def link_parents(root: Node) -> None:
    """Set ``parent`` on every node below ``root``."""
    stack = [root]
    while stack:
        node = stack.pop()
        for child in iter_child_nodes(node):
            child.parent = node
            stack.append(child)


def ancestors(node: Node) -> Iterator[Node]:
    """Yield the parent chain, nearest first."""
    current = node.parent
    while current is not None:
        yield current
        current = current.parent


def walk_left(node: Node, stop: Optional[Callable[[Node], bool]] = None) -> Iterator[Node]:
    """Walk from ``node`` leftwards through member objects and call callees.

    Yields ``node`` itself first, then each ``object`` / ``callee`` in turn.
    The walk ends at the first node that is neither a member access nor a
    call, or right after yielding a node for which ``stop`` returns True.
    """
    current = node
    while current is not None:
        yield current
        if stop is not None and stop(current):
            return
        if isinstance(current, MemberExpression):
            current = current.object
        elif isinstance(current, CallExpression):
            current = current.callee
        else:
            return


def root_identifier(node: Node) -> Optional[Identifier]:
    """Leftmost identifier reached through member objects only."""
    last = None
    for last in walk_left(node, stop=lambda n: not isinstance(n, MemberExpression)):
        pass
    return last if isinstance(last, Identifier) else None


def property_name(node: MemberExpression) -> Optional[str]:
    """Identifier name in the property slot (computed or not)."""
    prop = node.property
    if isinstance(prop, Identifier):
        return prop.name
    return None


def is_plain_member(node: Optional[Node]) -> bool:
    """A member access that is not itself an optional link."""
    return isinstance(node, MemberExpression) and not node.optional
