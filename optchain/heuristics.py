"""
Suppression Heuristics — decides when an optional-chaining rewrite is
unsafe, redundant, or not what the author meant.

A candidate access is left alone when:
  • its root is a known never-null object (globals, libraries, user list)
  • its object chain passes through an async/HTTP/RxJS call result
  • it already belongs to a ``&&`` / ``||`` chain (the chain matcher owns it)
  • it reads a parameter of a ``then``/``catch``/``finally`` callback
  • its property is an excluded chain method (``then``, ``get``, ``use`` …)
  • it is in write position (assignment target, ``++``/``--`` operand,
    destructuring target, ``for…in``/``for…of`` head)
  • it is a React ``someRef.current`` access
  • JavaScript forbids ``?.`` there (``super.x``, the callee of ``new``,
    the tag of a tagged template)
  • its root is a style-sheet module binding

No type information is used; these are syntactic conventions.
"""

import logging
import re
from typing import Dict, Iterable, Optional, Set

from optchain.js_nodes import (
    AssignmentExpression, CallExpression, ForInStatement, ForOfStatement,
    FUNCTION_KINDS, Identifier, ImportDeclaration, ImportDefaultSpecifier,
    ImportNamespaceSpecifier, LogicalExpression, MemberExpression, Node, Other,
    PATTERN_KINDS, Property, UpdateExpression, ancestors, property_name,
    root_identifier, walk_left,
)
from optchain.options import RuleOptions
from optchain.rule_meta import (
    ASYNC_CALLBACK_METHODS, ASYNC_ROOT_METHODS, DEFAULT_EXCLUDE_IDENTIFIERS,
    DEFAULT_EXCLUDED_CHAIN_METHODS, STYLE_IMPORT_PATTERN, STYLE_MODULE_NAMES,
)

logger = logging.getLogger(__name__)

_STYLE_IMPORT_RE = re.compile(STYLE_IMPORT_PATTERN, re.IGNORECASE)


class SuppressionEngine:
    """Per-run skip/allow decisions for candidate member accesses."""

    def __init__(self, options: Optional[RuleOptions] = None):
        options = options or RuleOptions()
        self.exclude_identifiers: Set[str] = set(DEFAULT_EXCLUDE_IDENTIFIERS)
        self.exclude_identifiers.update(options.exclude_identifiers)
        self.excluded_chain_methods: Set[str] = set(DEFAULT_EXCLUDED_CHAIN_METHODS)
        self.excluded_chain_methods.update(options.exclude_chain_methods)

        self.style_bindings: Set[str] = set()
        self._root_memo: Dict[MemberExpression, bool] = {}

    # ────────────────────────────────────────────────────────────────
    #  Style-sheet modules
    # ────────────────────────────────────────────────────────────────

    def register_import(self, node: ImportDeclaration) -> None:
        """Remember default/namespace bindings of style-sheet imports."""
        if not _STYLE_IMPORT_RE.search(node.source):
            return
        for spec in node.specifiers:
            if isinstance(spec, (ImportDefaultSpecifier, ImportNamespaceSpecifier)):
                self.style_bindings.add(spec.local.name)
                logger.debug("Style module binding '%s' from %s", spec.local.name, node.source)

    def is_style_module_access(self, node: MemberExpression) -> bool:
        root = root_identifier(node)
        if root is None:
            return False
        return root.name in self.style_bindings or root.name in STYLE_MODULE_NAMES

    # ────────────────────────────────────────────────────────────────
    #  Known-non-null roots (memoised)
    # ────────────────────────────────────────────────────────────────

    def is_rooted_in_safe_object(self, node: MemberExpression) -> bool:
        """True if the chain starts at an excluded identifier or an async call result.

        Every member link visited on the way shares the verdict, so all of
        them are cached; sibling sub-accesses then stop at the first hit.
        """
        if node in self._root_memo:
            return self._root_memo[node]

        visited = []
        result = False
        for link in walk_left(node):
            if isinstance(link, CallExpression):
                callee = link.callee
                if not isinstance(callee, MemberExpression):
                    break
                if property_name(callee) in ASYNC_ROOT_METHODS:
                    result = True
                    break
                continue
            if not isinstance(link, MemberExpression):
                break
            if link in self._root_memo:
                result = self._root_memo[link]
                break
            visited.append(link)
            obj = link.object
            if isinstance(obj, Identifier):
                result = obj.name in self.exclude_identifiers
                break
            if not isinstance(obj, (MemberExpression, CallExpression)):
                break

        for link in visited:
            self._root_memo[link] = result
        return result

    # ────────────────────────────────────────────────────────────────
    #  Position / naming heuristics
    # ────────────────────────────────────────────────────────────────

    def should_skip(self, node: MemberExpression) -> bool:
        if is_optional_forbidden(node):
            logger.debug("Skip: optional chaining not allowed at line %d", node.line)
            return True
        name = property_name(node)
        if name is not None and name in self.excluded_chain_methods:
            logger.debug("Skip: '%s' is an excluded chain method", name)
            return True
        if is_async_callback_parameter_use(node):
            logger.debug("Skip: async callback parameter at line %d", node.line)
            return True
        if is_write_position(node):
            return True
        if node.parent is not None and is_ref_current(node):
            return True
        return False


# ═══════════════════════════════════════════════════════════════════════
#  Stateless checks
# ═══════════════════════════════════════════════════════════════════════

# callee slots where an optional chain is a syntax error unless parenthesized
_NO_OPTIONAL_CALLEES = ("new_expression", "tagged_template")


def is_optional_forbidden(node: MemberExpression) -> bool:
    """Whether ``?.`` at this access would not parse.

    Covers ``super.x`` / ``super[x]`` and every access on the unparenthesized
    callee of ``new a.b()`` or the tag of a tagged template.
    """
    obj = node.object
    if isinstance(obj, Other) and obj.ts_type == "super":
        return True

    current: Node = node
    while not current.parenthesized:
        parent = current.parent
        if isinstance(parent, MemberExpression) and parent.object is current:
            current = parent
            continue
        return (isinstance(parent, Other) and parent.ts_type in _NO_OPTIONAL_CALLEES
                and bool(parent.children) and parent.children[0] is current)
    return False


def is_part_of_logical_chain(node: Node) -> bool:
    """Right operand of ``&&``/``||``, or the object of an access that is."""
    parent = node.parent
    if (isinstance(parent, LogicalExpression) and parent.operator in ("&&", "||")
            and parent.right is node):
        return True
    if (isinstance(parent, MemberExpression) and parent.object is node
            and is_part_of_logical_chain(parent)):
        return True
    return False


def is_write_position(node: Node) -> bool:
    """Whether ``node`` or any enclosing expression is written to."""
    current = node
    for parent in ancestors(node):
        if isinstance(parent, AssignmentExpression) and parent.left is current:
            return True
        if (isinstance(parent, Property) and parent.value is current
                and isinstance(parent.parent, PATTERN_KINDS)):
            return True
        if isinstance(parent, UpdateExpression) and parent.argument is current:
            return True
        if isinstance(parent, (ForInStatement, ForOfStatement)) and parent.left is current:
            return True
        current = parent
    return False


def is_ref_current(node: MemberExpression) -> bool:
    """``fooRef.current`` / ``refFoo.current``."""
    if property_name(node) != "current" or node.computed:
        return False
    obj = node.object
    return isinstance(obj, Identifier) and (obj.name.endswith("Ref") or obj.name.startswith("ref"))


def is_async_callback_parameter_use(node: MemberExpression) -> bool:
    """Access on a parameter of a callback handed to then/catch/finally.

    ``res => res.data`` inside ``.then(...)`` reads the resolved value,
    which is taken to be defined.  Deeper reads (``res.data.items``) and
    reads of other variables are still candidates.
    """
    obj = node.object
    if not isinstance(obj, Identifier):
        return False
    for fn in ancestors(node):
        if not isinstance(fn, FUNCTION_KINDS):
            continue
        call = fn.parent
        if not isinstance(call, CallExpression) or not isinstance(call.callee, MemberExpression):
            continue
        if property_name(call.callee) not in ASYNC_CALLBACK_METHODS:
            continue
        if obj.name in _param_names(fn.params):
            return True
    return False


def _param_names(params: Iterable[Node]) -> Set[str]:
    return {p.name for p in params if isinstance(p, Identifier)}
