"""
Auto Optional Chaining rule — traversal driver.

Walks the tree once, depth-first, and reacts to three events:
  • exit of an outermost ``&&`` expression  → chain pattern matcher
  • enter of an import declaration          → style-module bindings
  • exit of a member access                 → member / computed rewriters

Member accesses are handled on exit so nested accesses are resolved
before the access that contains them.
"""

import logging
from typing import Any, List

from optchain.analysis_context import AnalysisContext, Diagnostic
from optchain.chain_matcher import match_chain
from optchain.heuristics import is_part_of_logical_chain
from optchain.js_nodes import (
    ImportDeclaration, LogicalExpression, MemberExpression, Node, iter_child_nodes,
)
from optchain.options import parse_options
from optchain.rewriters import rewrite_computed, rewrite_member
from optchain.source_code import SourceCode

logger = logging.getLogger(__name__)


class OptionalChainingRule:
    """Finds unsafe property accesses and proposes optional-chaining fixes."""

    def __init__(self, options: Any = None):
        self.options = parse_options(options)

    def analyze(self, source_code: SourceCode) -> List[Diagnostic]:
        """Run one traversal; diagnostics come back in traversal order."""
        ctx = AnalysisContext(source_code, self.options)

        stack = [(source_code.ast, False)]
        while stack:
            node, exiting = stack.pop()
            if exiting:
                self._on_exit(node, ctx)
                continue
            self._on_enter(node, ctx)
            stack.append((node, True))
            children = list(iter_child_nodes(node))
            stack.extend((child, False) for child in reversed(children))

        logger.debug("Analysis produced %d diagnostic(s)", len(ctx.diagnostics))
        return ctx.diagnostics

    # ────────────────────────────────────────────────────────────────
    #  Events
    # ────────────────────────────────────────────────────────────────

    @staticmethod
    def _on_enter(node: Node, ctx: AnalysisContext) -> None:
        if isinstance(node, ImportDeclaration):
            ctx.suppression.register_import(node)

    def _on_exit(self, node: Node, ctx: AnalysisContext) -> None:
        if isinstance(node, LogicalExpression):
            if node.operator == "&&":
                match_chain(node, ctx)
        elif isinstance(node, MemberExpression):
            self._on_member_exit(node, ctx)

    @staticmethod
    def _on_member_exit(node: MemberExpression, ctx: AnalysisContext) -> None:
        if ctx.is_handled(node) or node.optional:
            return

        suppression = ctx.suppression
        if suppression.is_style_module_access(node):
            return
        if suppression.is_rooted_in_safe_object(node):
            return
        if suppression.should_skip(node):
            return

        if node.computed:
            rewrite_computed(node, ctx)
            return

        # the enclosing plain access recurses into this one
        parent = node.parent
        if isinstance(parent, MemberExpression) and parent.object is node and not parent.optional:
            return

        if is_part_of_logical_chain(node):
            return

        rewrite_member(node, ctx)


def analyze(source_code: SourceCode, options: Any = None) -> List[Diagnostic]:
    """Diagnostics for an already parsed file, in traversal order."""
    return OptionalChainingRule(options).analyze(source_code)


def lint_text(text: str, options: Any = None) -> List[Diagnostic]:
    """Parse ``text`` and return its diagnostics sorted by position."""
    diagnostics = analyze(SourceCode.from_text(text), options)
    # stable: diagnostics at the same position keep their report order
    return sorted(diagnostics, key=lambda d: (d.line, d.column))
