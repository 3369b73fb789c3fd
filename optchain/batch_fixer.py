import os
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from optchain.analysis_context import Diagnostic, TextEdit
from optchain.rule import lint_text
from optchain.source_code import SourceCode, SourceParseError

logger = logging.getLogger(__name__)


@dataclass
class FixResult:
    """Outcome of one fix pass over a text."""
    output: str
    fixed: bool
    applied: List[Diagnostic] = field(default_factory=list)
    remaining: List[Diagnostic] = field(default_factory=list)


@dataclass
class StableFixResult:
    """Outcome of repeated lint/fix passes."""
    output: str
    diagnostics: List[Diagnostic]   # first pass only
    passes: int
    applied: int = 0                # edits applied, all passes


class BatchFixer:
    """
    Applies the text edits attached to diagnostics.

    In-memory passes follow the one-pass policy of ESLint's source fixer:
    edits are taken in source order and one that starts at or before the end
    of the previously applied edit is left for a later pass.  File writes go
    bottom-up so earlier offsets stay valid.
    """

    def __init__(self, max_passes: int = 10):
        self.max_passes = max_passes

    # ────────────────────────────────────────────────────────────────
    #  In-memory
    # ────────────────────────────────────────────────────────────────

    def apply_fixes(self, text: str, diagnostics: Iterable[Diagnostic]) -> FixResult:
        """Apply one pass of fixes to ``text``."""
        diagnostics = list(diagnostics)
        fixable = [d for d in diagnostics if d.fix is not None]
        remaining = [d for d in diagnostics if d.fix is None]
        fixable.sort(key=lambda d: (d.fix.start_byte, d.fix.end_byte))

        content = text.encode("utf-8")
        output = bytearray()
        last_pos = -1
        cursor = 0
        applied = []

        for diagnostic in fixable:
            fix = diagnostic.fix
            if last_pos >= fix.start_byte or fix.start_byte > fix.end_byte:
                remaining.append(diagnostic)
                continue
            output += content[cursor:fix.start_byte]
            output += fix.text.encode("utf-8")
            cursor = fix.end_byte
            last_pos = fix.end_byte
            applied.append(diagnostic)

        output += content[cursor:]
        remaining.sort(key=lambda d: (d.line, d.column))
        return FixResult(
            output=output.decode("utf-8"),
            fixed=bool(applied),
            applied=applied,
            remaining=remaining,
        )

    def fix_until_stable(self, text: str, options: Any = None,
                         max_passes: Optional[int] = None) -> StableFixResult:
        """Lint and fix repeatedly until a pass applies nothing."""
        budget = max_passes if max_passes is not None else self.max_passes
        first_diagnostics: Optional[List[Diagnostic]] = None
        passes = 0
        applied = 0
        output = text

        while passes < budget:
            diagnostics = lint_text(output, options)
            if first_diagnostics is None:
                first_diagnostics = diagnostics
            result = self.apply_fixes(output, diagnostics)
            if not result.fixed:
                break
            passes += 1
            applied += len(result.applied)
            output = result.output
        else:
            logger.warning("Fixes still pending after %d passes", budget)

        return StableFixResult(output=output, diagnostics=first_diagnostics or [], passes=passes,
                               applied=applied)

    # ────────────────────────────────────────────────────────────────
    #  Files
    # ────────────────────────────────────────────────────────────────

    def apply_fixes_by_file(self, file_map: Dict[str, List[TextEdit]], dry_run: bool = False) -> Dict[str, int]:
        """
        file_map: { file_path: [TextEdit, ...] }
        Returns {file_path: number_of_edits_applied}.
        """
        summary = {}

        for file_path, edits in file_map.items():
            if not edits:
                continue

            try:
                count, msg = self._apply_to_file(file_path, edits, dry_run)
                summary[file_path] = count
                logger.info(msg)
            except (OSError, UnicodeDecodeError, SourceParseError) as e:
                logger.error("Failed to apply fixes to %s: %s", file_path, e)
                summary[file_path] = 0

        return summary

    def fix_files(self, paths: Iterable[str], options: Any = None, dry_run: bool = False) -> Dict[str, int]:
        """Fix each file to a fix-point; returns {file_path: edits_applied}."""
        summary = {}

        for file_path in paths:
            try:
                with open(file_path, "r", encoding="utf-8", newline="") as f:
                    original = f.read()
                result = self.fix_until_stable(original, options)
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Could not read %s: %s", file_path, e)
                summary[file_path] = 0
                continue
            except SourceParseError as e:
                logger.warning("Skipping %s: %s", file_path, e)
                summary[file_path] = 0
                continue

            summary[file_path] = result.applied
            if result.output == original:
                continue
            if dry_run:
                logger.info("[Dry Run] Would apply %d fix(es) to %s", result.applied, file_path)
                continue
            try:
                with open(file_path, "w", encoding="utf-8", newline="") as f:
                    f.write(result.output)
                logger.info("Applied %d fix(es) to %s in %d pass(es)",
                            result.applied, file_path, result.passes)
            except OSError as e:
                logger.error("Failed to write %s: %s", file_path, e)
                summary[file_path] = 0

        return summary

    def _apply_to_file(self, file_path: str, edits: List[TextEdit], dry_run: bool):
        if not os.path.exists(file_path):
            raise FileNotFoundError(f"File not found: {file_path}")

        with open(file_path, "rb") as f:
            content = f.read()

        # Bottom-up: an edit must end at or before the start of the one after it
        sorted_edits = sorted(edits, key=lambda e: (e.start_byte, e.end_byte), reverse=True)

        last_start = float('inf')
        applied = 0
        new_content = bytearray(content)

        for edit in sorted_edits:
            start, end = edit.start_byte, edit.end_byte
            if end > last_start or start > end:
                logger.warning("Overlap detected in %s at offset %d-%d. Skipping edit.",
                               file_path, start, end)
                continue
            new_content[start:end] = edit.text.encode("utf-8")
            last_start = start
            applied += 1

        # refuse to write a result that no longer parses
        SourceCode.from_text(bytes(new_content).decode("utf-8"))

        if dry_run:
            return applied, f"[Dry Run] Would apply {applied} fixes to {file_path}"

        with open(file_path, "wb") as f:
            f.write(new_content)
        return applied, f"Applied {applied} fixes to {file_path}"
