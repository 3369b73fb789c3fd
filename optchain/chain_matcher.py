"""
Chain Pattern Matcher — collapses guard chains into one optional chain.

    a && a.b && a.b.c        →  a?.b?.c
    x && a && a.b            →  x && a?.b
    a && a.b && c.d          →  a?.b && c.d

The outermost ``&&`` of a left-leaning chain is flattened into operands;
the first maximal run where every operand is the object of the next one
is replaced by a single optional chain.  Operands before and after the
run are left as they are.
"""

import logging
from typing import List, Optional, Tuple

from optchain.analysis_context import AnalysisContext, Diagnostic, TextEdit
from optchain.js_nodes import LogicalExpression, MemberExpression, Node
from optchain.rule_meta import PREFER_CHAINING
from optchain.token_compare import equal_tokens

logger = logging.getLogger(__name__)


def is_outermost_and(node: LogicalExpression) -> bool:
    parent = node.parent
    return not (isinstance(parent, LogicalExpression) and parent.operator == "&&")


def flatten_and_chain(node: LogicalExpression) -> List[Node]:
    """Operands of a left-leaning ``&&`` chain, in source order."""
    operands = [node.right]
    left = node.left
    while isinstance(left, LogicalExpression) and left.operator == "&&":
        operands.append(left.right)
        left = left.left
    operands.append(left)
    operands.reverse()
    return operands


def find_guarded_run(operands: List[Node], ctx: AnalysisContext) -> Optional[Tuple[int, int]]:
    """(first, last) indices of the first maximal guard run, or None."""

    def continues(guard: Node, access: Node) -> bool:
        return (isinstance(access, MemberExpression)
                and equal_tokens(guard, access.object, ctx.source_code))

    first = next((i for i in range(len(operands) - 1)
                  if continues(operands[i], operands[i + 1])), None)
    if first is None:
        return None

    last = first + 1
    while last < len(operands) - 1 and continues(operands[last], operands[last + 1]):
        last += 1
    return first, last


def build_chain_text(run: List[Node], ctx: AnalysisContext) -> str:
    source_code = ctx.source_code
    text = source_code.get_text(run[0], outer=True)
    for access in run[1:]:
        prop = source_code.get_text(access.property)
        text += "?." + (f"[{prop}]" if access.computed else prop)
    return text


def _parens_balanced(start: int, end: int, ctx: AnalysisContext) -> bool:
    depth = 0
    for token in ctx.source_code.tokens_in_range(start, end):
        if token.value == "(":
            depth += 1
        elif token.value == ")":
            depth -= 1
            if depth < 0:
                return False
    return depth == 0


def match_chain(node: LogicalExpression, ctx: AnalysisContext) -> Optional[Diagnostic]:
    """Report and fix the guard run of an outermost ``&&`` expression."""
    if node.operator != "&&" or not is_outermost_and(node):
        return None

    operands = flatten_and_chain(node)
    found = find_guarded_run(operands, ctx)
    if found is None:
        return None
    first, last = found
    run = operands[first:last + 1]

    start = run[0].outer_range[0]
    end = run[-1].outer_range[1]
    if not _parens_balanced(start, end, ctx):
        # run crosses a grouping boundary, e.g. (a && a.b) && a.b.c
        logger.debug("Chain at line %d spans unbalanced parentheses; not rewritten", node.line)
        return None

    text = build_chain_text(run, ctx)
    for access in run[1:]:
        ctx.processed.add(access)

    return ctx.report(node, PREFER_CHAINING, TextEdit(start, end, text))
