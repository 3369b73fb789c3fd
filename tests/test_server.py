"""
MCP Server Tests — tool functions called directly.

  1. Snippet tools (lint_code, fix_code) and their error strings
  2. Workspace tools require set_workspace first
  3. File tools read, fix and summarise workspace files
  4. explain_rule
"""

import os
import sys
import tempfile
import unittest
from unittest import mock

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

import fastmcp_server as server
from optchain.options import RuleOptions


class ServerTestCase(unittest.TestCase):

    def setUp(self):
        server.context_provider = None
        server.rule_options = RuleOptions()


class TestSnippetTools(ServerTestCase):

    def test_lint_code(self):
        result = server.lint_code("const x = a.b.c;")
        self.assertIn("2 issue(s)", result)
        self.assertIn("usePropertyChaining", result)

    def test_lint_code_clean(self):
        self.assertTrue(server.lint_code("a?.b").startswith("No optional-chaining issues"))

    def test_lint_code_with_options(self):
        result = server.lint_code("store.a", '{"excludeIdentifiers": ["store"]}')
        self.assertTrue(result.startswith("No optional-chaining issues"))

    def test_lint_code_syntax_error(self):
        self.assertTrue(server.lint_code("a &&").startswith("Error:"))

    def test_lint_code_bad_options(self):
        self.assertTrue(server.lint_code("a.b", '{"nope": 1}').startswith("Error:"))

    def test_fix_code(self):
        result = server.fix_code("a.b && a.b.c")
        self.assertIn("```js\na?.b?.c\n```", result)
        self.assertIn("Applied 2 fix(es) in 2 pass(es)", result)

    def test_fix_code_counts_edits_not_first_pass_issues(self):
        result = server.fix_code("a[0] && a[0].b")
        self.assertTrue(result.startswith("Applied 2 fix(es) in 2 pass(es)"))
        self.assertIn("a?.[0]?.b", result)

    def test_fix_code_no_changes(self):
        self.assertTrue(server.fix_code("a?.b").startswith("No changes"))


class TestWorkspaceTools(ServerTestCase):

    def setUp(self):
        super().setUp()
        self.tmp = tempfile.TemporaryDirectory()
        self.root = self.tmp.name
        self._write("src/a.js", "const v = user.profile.name;\n")
        self._write("src/b.js", "const w = user?.profile;\n")
        self._write("src/bad.js", "const = ;\n")

    def tearDown(self):
        self.tmp.cleanup()

    def _write(self, rel, content):
        path = os.path.join(self.root, rel)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)

    def _read(self, rel):
        with open(os.path.join(self.root, rel), encoding="utf-8") as f:
            return f.read()

    def test_tools_require_workspace(self):
        for result in (server.lint_file("src/a.js"), server.fix_file("src/a.js"),
                       server.lint_workspace()):
            self.assertTrue(result.startswith("Error: No workspace set"))

    def test_set_workspace_missing_dir(self):
        result = server.set_workspace(os.path.join(self.root, "nope"))
        self.assertTrue(result.startswith("Error: Workspace root not found"))

    def test_set_workspace(self):
        result = server.set_workspace(self.root, exclude_identifiers="store, i18n")
        self.assertIn("3 JavaScript file(s)", result)
        self.assertEqual(server.rule_options.exclude_identifiers, ["store", "i18n"])

    def test_set_workspace_options_apply_to_files(self):
        server.set_workspace(self.root, exclude_identifiers="user")
        self.assertTrue(server.lint_file("src/a.js").startswith("No optional-chaining issues"))

    def test_lint_file(self):
        server.set_workspace(self.root)
        result = server.lint_file("src/a.js")
        self.assertIn("2 issue(s)", result)
        self.assertIn("`const v = user.profile.name;`", result)

    def test_lint_file_errors(self):
        server.set_workspace(self.root)
        self.assertTrue(server.lint_file("src/missing.js").startswith("Error: Cannot read"))
        self.assertTrue(server.lint_file("src/bad.js").startswith("Error:"))

    def test_fix_file_dry_run(self):
        server.set_workspace(self.root)
        result = server.fix_file("src/a.js", dry_run=True)
        self.assertTrue(result.startswith("[Dry Run] Would apply 2 fix(es)"))
        self.assertIn("user?.profile?.name", result)
        self.assertEqual(self._read("src/a.js"), "const v = user.profile.name;\n")

    def test_fix_file(self):
        server.set_workspace(self.root)
        result = server.fix_file("src/a.js")
        self.assertEqual(result, "Applied 2 fix(es) to `src/a.js` in 1 pass(es).")
        self.assertEqual(self._read("src/a.js"), "const v = user?.profile?.name;\n")
        self.assertTrue(server.fix_file("src/b.js").startswith("No changes needed"))

    def test_fix_file_writes_through_batch_fixer(self):
        server.set_workspace(self.root)
        calls = []
        real_fix_files = server.batch_fixer.fix_files

        def recording_fix_files(paths, options=None, dry_run=False):
            calls.append((list(paths), dry_run))
            return real_fix_files(paths, options, dry_run)

        with mock.patch.object(server.batch_fixer, "fix_files", side_effect=recording_fix_files):
            server.fix_file("src/a.js", dry_run=True)
            server.fix_file("src/a.js")
        path = os.path.join(self.root, "src", "a.js")
        self.assertEqual(calls, [([path], True), ([path], False)])
        self.assertEqual(self._read("src/a.js"), "const v = user?.profile?.name;\n")

    def test_fix_file_errors(self):
        server.set_workspace(self.root)
        self.assertTrue(server.fix_file("src/missing.js").startswith("Error: Cannot read"))
        self.assertTrue(server.fix_file("src/bad.js").startswith("Error:"))

    def test_lint_workspace(self):
        server.set_workspace(self.root)
        result = server.lint_workspace()
        self.assertIn("| Files with issues | 1 |", result)
        self.assertIn("| Total issues | 2 |", result)
        self.assertIn("| Unparsable files | 1 |", result)
        self.assertIn("`src/a.js`", result)
        self.assertIn("`src/bad.js`", result)


class TestExplainRule(ServerTestCase):

    def test_explain_rule(self):
        result = server.explain_rule()
        self.assertTrue(result.startswith("## auto-optional-chaining/auto-optional-chaining"))


if __name__ == "__main__":
    unittest.main()
