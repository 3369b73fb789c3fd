"""
Rule Tests — end-to-end diagnostics and single-pass fix output.

Each invalid case lists the message ids in position order and the text
after one fix pass, the way an ESLint rule tester checks a rule:
  1. Code that must produce no diagnostics
  2. Guard chains collapsed by the chain matcher
  3. Bare member / computed accesses and their recursion
  4. Async-callback parameters and nested callbacks
  5. Parenthesised operands and grouping boundaries
  6. Contract violations in the rewriters
"""

import os
import sys
import unittest

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

from optchain.analysis_context import AnalysisContext
from optchain.batch_fixer import BatchFixer
from optchain.js_nodes import MemberExpression
from optchain.rewriters import rewrite_member
from optchain.rule import OptionalChainingRule, analyze, lint_text
from optchain.rule_meta import OPTIONAL_COMPUTED, PREFER_CHAINING, PROPERTY_CHAINING
from optchain.source_code import SeparatorTokenError, SourceCode

PREFER = PREFER_CHAINING
MEMBER = PROPERTY_CHAINING
COMPUTED = OPTIONAL_COMPUTED


def run_rule(code, options=None):
    """(message ids in position order, output after one fix pass)."""
    diagnostics = lint_text(code, options)
    output = BatchFixer().apply_fixes(code, diagnostics).output
    return [d.message_id for d in diagnostics], output


VALID = [
    "a || a.b",
    "a && b && c",
    "a?.b?.c",
    "a?.b()",
    "a?.b?.c()",
    "Object.keys(a)",
    "data?.results?.[0]",
    "React.memo()",
    'document.body.appendChild("div")',
    'console.log("Hello World")',
    "promise.then(res => res.data)",
    'axios.get("url").then(res => res.data)',
    "array?.map(item => item?.name)?.filter(name => name?.length > 3)",
    "users?.filter(user => user?.active)?.map(user => user?.name)",
    "response.then(data => data?.items?.map(item => item?.id))",
    "elements?.forEach(el => el?.classList?.add('active'))",
    "import styles from './styles.css'; styles.container",
    "response.then(data => data.length)",
    "const obj = {}; obj.prop = 'value';",
    "a?.()",
    "a.b.c = true",
    "class A extends B { m() { return super.x(); } }",
    "class A extends B { m() { return super[k]; } }",
    "new a.b();",
    "new a.b.c(x);",
    "a.b`x`;",
    "a.b.c`x${y}`;",
]

INVALID = [
    ("a && a.b", [PREFER], "a?.b"),
    ("a && a.b && a.b.c", [PREFER], "a?.b?.c"),
    ("a && a.b && c.d", [PREFER], "a?.b && c.d"),
    ("c.d && a && a.b", [MEMBER, PREFER], "c?.d && a?.b"),
    ("(a.b && a.b.c) || (d.e && d.e.f)",
     [MEMBER, PREFER, MEMBER, PREFER], "(a.b?.c) || (d.e?.f)"),
    ("a[0] && a[0].b", [COMPUTED, PREFER, COMPUTED], "a[0]?.b"),
    ("a && a[i]", [PREFER, COMPUTED], "a?.[i]"),
    ("a && a.b && a.b[c]", [PREFER, MEMBER, COMPUTED], "a?.b?.[c]"),
    ("a.b && a.b[c]", [MEMBER, PREFER, MEMBER, COMPUTED], "a.b?.[c]"),
    ("a.b", [MEMBER], "a?.b"),
    ("a.b.c", [MEMBER, MEMBER], "a?.b?.c"),
    ("a?.b.c", [MEMBER], "a?.b?.c"),
    ("a.b?.c", [MEMBER], "a?.b?.c"),
    ("a.b.c.d", [MEMBER, MEMBER, MEMBER], "a?.b?.c?.d"),
    ("data.results[0];", [MEMBER, COMPUTED], "data?.results?.[0];"),
    ("response.then(data => data.items.map(item => item.id))",
     [MEMBER, MEMBER, MEMBER],
     "response.then(data => data?.items?.map(item => item?.id))"),
    ("fetchUsers().then(response => response.data.users.filter(user => user.active))",
     [MEMBER, MEMBER, MEMBER, MEMBER],
     "fetchUsers().then(response => response?.data?.users?.filter(user => user?.active))"),
    ("a.b()", [MEMBER], "a?.b()"),
    ("a.b.c()", [MEMBER, MEMBER], "a?.b?.c()"),
    ("class A extends B { m() { return super.a.b; } }", [MEMBER],
     "class A extends B { m() { return super.a?.b; } }"),
    ("new a.b().c", [MEMBER], "new a.b()?.c"),
    ("a.b`x`.c", [MEMBER], "a.b`x`?.c"),
]


class TestValidCode(unittest.TestCase):

    def test_valid_cases(self):
        for code in VALID:
            with self.subTest(code=code):
                self.assertEqual(lint_text(code), [])


class TestInvalidCode(unittest.TestCase):

    def test_invalid_cases(self):
        for code, expected_ids, expected_output in INVALID:
            with self.subTest(code=code):
                ids, output = run_rule(code)
                self.assertEqual(ids, expected_ids)
                self.assertEqual(output, expected_output)

    def test_every_diagnostic_carries_a_fix(self):
        for code, _, _ in INVALID:
            with self.subTest(code=code):
                self.assertTrue(all(d.fix is not None for d in lint_text(code)))


class TestChainMatcher(unittest.TestCase):

    def test_run_after_unrelated_operand(self):
        self.assertEqual(run_rule("x && a && a.b"), ([PREFER], "x && a?.b"))

    def test_only_first_run_is_collapsed(self):
        ids, output = run_rule("a && a.b && c && c.d")
        self.assertEqual(ids, [PREFER])
        self.assertEqual(output, "a?.b && c && c.d")

    def test_chain_over_call_result(self):
        ids, output = run_rule("f() && f().x")
        self.assertEqual(ids, [PREFER])
        self.assertEqual(output, "f()?.x")

    def test_diagnostic_anchors_on_and_expression(self):
        diagnostics = lint_text("const v = a && a.b;")
        self.assertEqual(len(diagnostics), 1)
        self.assertEqual((diagnostics[0].line, diagnostics[0].column), (1, 10))
        fix = diagnostics[0].fix
        self.assertEqual((fix.start_byte, fix.end_byte, fix.text), (10, 18, "a?.b"))

    def test_parenthesised_operands(self):
        self.assertEqual(run_rule("(a) && (a.b)"), ([PREFER], "(a)?.b"))

    def test_run_crossing_parentheses_is_not_rewritten(self):
        self.assertEqual(lint_text("(a && a.b) && a.b.c"), [])

    def test_nested_and_inside_call_is_separate(self):
        ids, output = run_rule("f(a && a.b) && g")
        self.assertEqual(ids, [PREFER])
        self.assertEqual(output, "f(a?.b) && g")

    def test_or_is_not_collapsed(self):
        self.assertEqual(lint_text("a || a.b || a.b.c"), [])


class TestRewriters(unittest.TestCase):

    def test_multiline_positions(self):
        diagnostics = lint_text("const x = 1;\nfoo.bar;\n")
        self.assertEqual(len(diagnostics), 1)
        self.assertEqual((diagnostics[0].line, diagnostics[0].column), (2, 0))

    def test_computed_with_string_key(self):
        self.assertEqual(run_rule('a["k"]'), ([COMPUTED], 'a?.["k"]'))

    def test_computed_object_of_computed(self):
        self.assertEqual(run_rule("a[0][1]"), ([COMPUTED, COMPUTED], "a?.[0]?.[1]"))

    def test_optional_object_is_not_recursed(self):
        self.assertEqual(run_rule("a?.b[c]"), ([COMPUTED], "a?.b?.[c]"))

    def test_whitespace_before_dot(self):
        self.assertEqual(run_rule("a\n  .b"), ([MEMBER], "a\n  ?.b"))

    def test_multibyte_text_before_fix(self):
        code = 'const s = "héllo"; a.b;'
        self.assertEqual(run_rule(code), ([MEMBER], 'const s = "héllo"; a?.b;'))

    def test_column_counts_characters(self):
        diagnostics = lint_text('const s = "é"; a.b;')
        self.assertEqual((diagnostics[0].line, diagnostics[0].column), (1, 15))
        self.assertEqual(diagnostics[0].fix.start_byte, 17)

    def test_each_node_reported_once(self):
        diagnostics = lint_text("a.b.c.d && x")
        nodes = [d.node for d in diagnostics]
        self.assertEqual(len(nodes), len(set(nodes)))
        self.assertEqual(len(diagnostics), 3)

    def test_missing_separator_raises(self):
        sc = SourceCode.from_text("a.b")
        member = sc.ast.body[0].children[0]
        broken = MemberExpression(start=0, end=3, line=1, column=0,
                                  object=member.property, property=member.property)
        with self.assertRaises(SeparatorTokenError):
            rewrite_member(broken, AnalysisContext(sc))


class TestDriver(unittest.TestCase):

    def test_analyze_returns_traversal_order(self):
        sc = SourceCode.from_text("c.d && a && a.b")
        ids = [d.message_id for d in analyze(sc)]
        self.assertEqual(ids, [MEMBER, PREFER])

    def test_runs_are_independent(self):
        rule = OptionalChainingRule()
        sc = SourceCode.from_text("a.b")
        first = rule.analyze(sc)
        second = rule.analyze(sc)
        self.assertEqual(len(first), 1)
        self.assertEqual(len(second), 1)

    def test_diagnostic_dict(self):
        d = lint_text("a.b")[0].to_dict()
        self.assertEqual(d["rule_id"], "auto-optional-chaining")
        self.assertEqual(d["message_id"], MEMBER)
        self.assertEqual(d["message"], "Use optional chaining instead of regular property access.")
        self.assertEqual(d["fix"], {"start_byte": 1, "end_byte": 1, "text": "?"})


if __name__ == "__main__":
    unittest.main()
