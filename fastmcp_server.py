"""
Auto Optional Chaining — MCP Server

Exposes tools to coding assistants via the Model Context Protocol:

  1. set_workspace   — set the workspace root and default rule options
  2. lint_code       — report unsafe property accesses in a code snippet
  3. fix_code        — rewrite a snippet with optional chaining
  4. lint_file       — report diagnostics for one workspace file
  5. fix_file        — rewrite one workspace file in place (or dry run)
  6. lint_workspace  — summary of diagnostics across every JS file
  7. explain_rule    — rule description, examples and options
"""

from mcp.server.fastmcp import FastMCP
import logging
import os
import sys
from typing import List

# Ensure the optchain package is importable when run as a script
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from optchain.analysis_context import Diagnostic
from optchain.batch_fixer import BatchFixer
from optchain.context_provider import ContextProvider
from optchain.options import RuleConfigurationError, RuleOptions, parse_options
from optchain.rule import lint_text
from optchain.rule_meta import format_rule_explanation
from optchain.source_code import SourceParseError

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════
#  Server Setup
# ═══════════════════════════════════════════════════════════════════════

mcp = FastMCP("Auto Optional Chaining")

context_provider = None
rule_options = RuleOptions()
batch_fixer = BatchFixer()


def _split_names(value: str) -> List[str]:
    return [n.strip() for n in value.split(",") if n.strip()]


def _resolve_options(options_json: str) -> RuleOptions:
    """Per-call options override the workspace defaults when given."""
    if options_json.strip():
        return parse_options(options_json)
    return rule_options


def _format_diagnostics(diagnostics: List[Diagnostic], title: str, file_path: str = "") -> str:
    if not diagnostics:
        return f"No optional-chaining issues found in {title}."

    result = f"**{len(diagnostics)} issue(s) in {title}:**\n\n"
    for d in diagnostics:
        result += f"- Line {d.line}, col {d.column + 1} `{d.message_id}`: {d.message}\n"
        if file_path and context_provider is not None:
            line = context_provider.get_line(file_path, d.line).rstrip("\n")
            if line:
                result += f"  `{line.strip()}`\n"
    return result


# ═══════════════════════════════════════════════════════════════════════
#  Tool 1 — Set Workspace
# ═══════════════════════════════════════════════════════════════════════

@mcp.tool()
def set_workspace(workspace_root: str, exclude_identifiers: str = "", exclude_chain_methods: str = "") -> str:
    """
    Sets the workspace root used by the file tools and the default rule options.

    Args:
        workspace_root:        Root directory of the JavaScript project.
        exclude_identifiers:   Comma-separated root names treated as never-null.
                               Example: "store,config,i18n"
        exclude_chain_methods: Comma-separated property names never rewritten.
                               Example: "pipe,map"
    """
    global context_provider, rule_options

    if not os.path.isdir(workspace_root):
        return f"Error: Workspace root not found at {workspace_root}"

    try:
        rule_options = parse_options({
            "excludeIdentifiers": _split_names(exclude_identifiers),
            "excludeChainMethods": _split_names(exclude_chain_methods),
        })
    except RuleConfigurationError as e:
        return f"Error: {e}"

    context_provider = ContextProvider(workspace_root)
    files = context_provider.discover_files()
    logger.info("Workspace set to %s (%d JS files)", workspace_root, len(files))

    result = f"Workspace set to `{workspace_root}`: {len(files)} JavaScript file(s) found."
    if rule_options.exclude_identifiers:
        result += f"\nExtra excluded identifiers: {', '.join(rule_options.exclude_identifiers)}"
    if rule_options.exclude_chain_methods:
        result += f"\nExtra excluded chain methods: {', '.join(rule_options.exclude_chain_methods)}"
    return result


# ═══════════════════════════════════════════════════════════════════════
#  Tools 2-3 — Snippets
# ═══════════════════════════════════════════════════════════════════════

@mcp.tool()
def lint_code(code: str, options_json: str = "") -> str:
    """
    Lists the property accesses in a JavaScript snippet that should use
    optional chaining.

    Args:
        code:         JavaScript source text.
        options_json: Optional rule options as JSON, e.g.
                      '{"excludeIdentifiers": ["store"]}'.
    """
    try:
        diagnostics = lint_text(code, _resolve_options(options_json))
    except (SourceParseError, RuleConfigurationError) as e:
        return f"Error: {e}"
    return _format_diagnostics(diagnostics, "snippet")


@mcp.tool()
def fix_code(code: str, options_json: str = "") -> str:
    """
    Rewrites a JavaScript snippet with optional chaining, repeating until
    no further fix applies.

    Args:
        code:         JavaScript source text.
        options_json: Optional rule options as JSON.
    """
    try:
        result = batch_fixer.fix_until_stable(code, _resolve_options(options_json))
    except (SourceParseError, RuleConfigurationError) as e:
        return f"Error: {e}"

    if result.output == code:
        return "No changes: the snippet already uses optional chaining where it applies."
    return (
        f"Applied {result.applied} fix(es) in {result.passes} pass(es):\n\n"
        f"```js\n{result.output}\n```"
    )


# ═══════════════════════════════════════════════════════════════════════
#  Tools 4-6 — Files
# ═══════════════════════════════════════════════════════════════════════

@mcp.tool()
def lint_file(file_path: str) -> str:
    """
    Lists optional-chaining diagnostics for a file in the workspace.

    Args:
        file_path: Path of the file, relative to the workspace root.
    """
    if context_provider is None:
        return "Error: No workspace set. Call set_workspace first."

    text = context_provider.read_source(file_path)
    if text is None:
        return f"Error: Cannot read {file_path}"
    try:
        diagnostics = lint_text(text, rule_options)
    except SourceParseError as e:
        return f"Error: {file_path}: {e}"
    return _format_diagnostics(diagnostics, f"`{file_path}`", file_path)


@mcp.tool()
def fix_file(file_path: str, dry_run: bool = False) -> str:
    """
    Rewrites a workspace file with optional chaining.

    Args:
        file_path: Path of the file, relative to the workspace root.
        dry_run:   Report what would change without writing the file.
    """
    if context_provider is None:
        return "Error: No workspace set. Call set_workspace first."

    text = context_provider.read_source(file_path)
    if text is None:
        return f"Error: Cannot read {file_path}"
    try:
        result = batch_fixer.fix_until_stable(text, rule_options)
    except SourceParseError as e:
        return f"Error: {file_path}: {e}"

    if result.output == text:
        return f"No changes needed in `{file_path}`."

    full_path = context_provider.resolve(file_path)
    applied = batch_fixer.fix_files([full_path], rule_options, dry_run).get(full_path, 0)
    if dry_run:
        return (
            f"[Dry Run] Would apply {applied} fix(es) to `{file_path}`:\n\n"
            f"```js\n{result.output}\n```"
        )
    if not applied:
        return f"Error: Failed to write {file_path}"
    return f"Applied {applied} fix(es) to `{file_path}` in {result.passes} pass(es)."


@mcp.tool()
def lint_workspace() -> str:
    """
    Lints every JavaScript file in the workspace and returns a per-file summary.
    """
    if context_provider is None:
        return "Error: No workspace set. Call set_workspace first."

    rows = []
    total = 0
    unparsable = []
    for file_path in context_provider.discover_files():
        text = context_provider.read_source(file_path)
        if text is None:
            continue
        try:
            count = len(lint_text(text, rule_options))
        except SourceParseError:
            unparsable.append(file_path)
            continue
        if count:
            rows.append((file_path, count))
            total += count

    summary = "## Workspace Lint\n\n"
    summary += "| Metric | Count |\n|--------|-------|\n"
    summary += f"| Files with issues | {len(rows)} |\n"
    summary += f"| Total issues | {total} |\n"
    summary += f"| Unparsable files | {len(unparsable)} |\n"

    if rows:
        summary += "\n### Files\n\n| File | Issues |\n|------|--------|\n"
        for file_path, count in sorted(rows, key=lambda r: -r[1]):
            summary += f"| `{file_path}` | {count} |\n"
    if unparsable:
        summary += "\n### Skipped (syntax errors)\n\n"
        summary += "".join(f"- `{p}`\n" for p in unparsable)
    return summary


# ═══════════════════════════════════════════════════════════════════════
#  Tool 7 — Explain Rule
# ═══════════════════════════════════════════════════════════════════════

@mcp.tool()
def explain_rule() -> str:
    """
    Returns the rule description, non-compliant/compliant examples, the
    accesses that are never rewritten, and the available options.
    """
    return format_rule_explanation()


if __name__ == "__main__":
    mcp.run()
