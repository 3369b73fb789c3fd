"""
Structural equality of two expressions by their token streams.

Two subtrees are equal when their tokens match one-for-one in kind and
text.  Whitespace and comments never reach the token stream, so ``a . b``
equals ``a.b``; ``a["x"]`` and ``a['x']`` differ.
"""

from optchain.js_nodes import Node
from optchain.source_code import SourceCode


def equal_tokens(left: Node, right: Node, source_code: SourceCode) -> bool:
    """True if ``left`` and ``right`` consist of the same token sequence."""
    tokens_l = source_code.tokens(left)
    tokens_r = source_code.tokens(right)
    if len(tokens_l) != len(tokens_r):
        return False
    for tl, tr in zip(tokens_l, tokens_r):
        if tl.kind != tr.kind or tl.value != tr.value:
            return False
    return True
