"""
Per-run analysis state and the diagnostics it collects.

One ``AnalysisContext`` exists per ``analyze()`` call.  It owns every
mutable piece of bookkeeping (processed nodes, reported nodes, the
suppression engine with its style bindings and root memo) so that nothing
leaks between runs or files.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from optchain.heuristics import SuppressionEngine
from optchain.js_nodes import Node
from optchain.options import RuleOptions
from optchain.rule_meta import RULE_ID, RULE_META
from optchain.source_code import SourceCode


@dataclass(frozen=True)
class TextEdit:
    """Replace bytes ``[start_byte, end_byte)`` with ``text`` (insert when equal)."""
    start_byte: int
    end_byte: int
    text: str

    def to_dict(self) -> Dict[str, Any]:
        return {"start_byte": self.start_byte, "end_byte": self.end_byte, "text": self.text}


@dataclass
class Diagnostic:
    """A reported access; ``column`` counts characters, ``fix`` offsets count UTF-8 bytes."""
    message_id: str
    message: str
    line: int               # 1-indexed
    column: int             # 0-indexed, in characters (fix offsets are bytes)
    fix: Optional[TextEdit] = None
    rule_id: str = RULE_ID
    node: Optional[Node] = field(default=None, repr=False, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "message_id": self.message_id,
            "message": self.message,
            "line": self.line,
            "column": self.column,
            "fix": self.fix.to_dict() if self.fix else None,
        }


class AnalysisContext:
    """Everything one traversal needs and produces."""

    def __init__(self, source_code: SourceCode, options: Optional[RuleOptions] = None):
        self.source_code = source_code
        self.options = options or RuleOptions()
        self.suppression = SuppressionEngine(self.options)
        self.processed: Set[Node] = set()     # folded into a chain rewrite
        self.reported: Set[Node] = set()
        self.diagnostics: List[Diagnostic] = []

    def is_handled(self, node: Node) -> bool:
        return node in self.processed or node in self.reported

    def report(self, node: Node, message_id: str, fix: Optional[TextEdit]) -> Diagnostic:
        diagnostic = Diagnostic(
            message_id=message_id,
            message=RULE_META.messages[message_id],
            line=node.line,
            column=node.column,
            fix=fix,
            node=node,
        )
        self.reported.add(node)
        self.diagnostics.append(diagnostic)
        return diagnostic
