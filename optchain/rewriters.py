"""
Member and computed access rewriters.

Each rewriter fixes the innermost qualifying access first and then its own
level, so ``a.b.c`` yields two diagnostics with one ``?`` insertion each:

    a.b.c      →  a?.b?.c        (``?`` inserted before each ``.``)
    a.b[i]     →  a?.b?.[i]      (``?.`` inserted before ``[``)
    a.b()      →  a?.b()         (the marker belongs to the access, not the call)
"""

from optchain.analysis_context import AnalysisContext, TextEdit
from optchain.heuristics import is_optional_forbidden
from optchain.js_nodes import MemberExpression, Node, is_plain_member
from optchain.rule_meta import OPTIONAL_COMPUTED, PROPERTY_CHAINING
from optchain.source_code import SeparatorTokenError


def _recurse_into_object(node: MemberExpression, ctx: AnalysisContext) -> None:
    obj = node.object
    if not is_plain_member(obj) or ctx.is_handled(obj) or is_optional_forbidden(obj):
        return
    if obj.computed:
        rewrite_computed(obj, ctx)
    else:
        rewrite_member(obj, ctx)


def rewrite_member(node: Node, ctx: AnalysisContext) -> None:
    """Insert ``?`` before the ``.`` of a plain access (and of its plain objects)."""
    if not is_plain_member(node) or node.computed:
        return

    _recurse_into_object(node, ctx)

    source_code = ctx.source_code
    dot = source_code.token_after(node.object, lambda t: t.value == ".")
    if dot is None:
        raise SeparatorTokenError(
            f"No '.' token after object at line {node.line}, column {node.column}")

    ctx.report(node, PROPERTY_CHAINING, TextEdit(dot.start, dot.start, "?"))


def rewrite_computed(node: Node, ctx: AnalysisContext) -> None:
    """Turn ``obj[expr]`` into ``obj?.[expr]`` (and fix plain objects first)."""
    if not is_plain_member(node) or not node.computed:
        return

    _recurse_into_object(node, ctx)

    source_code = ctx.source_code
    bracket = source_code.token_after(node.object, lambda t: t.value == "[")
    if bracket is None:
        raise SeparatorTokenError(
            f"No '[' token after object at line {node.line}, column {node.column}")

    dot = next((t for t in source_code.tokens_between(node.object, bracket)
                if t.value == "."), None)
    if dot is not None:
        fix = TextEdit(dot.start, dot.end, "?.")
    else:
        fix = TextEdit(bracket.start, bracket.start, "?.")

    ctx.report(node, OPTIONAL_COMPUTED, fix)
