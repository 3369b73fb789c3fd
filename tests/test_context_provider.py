"""
Context Provider Tests — reading, line context, and file discovery.
"""

import os
import sys
import tempfile
import unittest

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

from optchain.context_provider import ContextProvider


class TestContextProvider(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.tmp = tempfile.TemporaryDirectory()
        root = cls.tmp.name
        files = {
            "src/app.js": "const a = 1;\nconst b = a.b;\nconst c = 3;\n",
            "src/view.jsx": "export default () => <div />;\n",
            "lib/util.mjs": "export const x = 1;\n",
            "lib/legacy.cjs": "module.exports = {};\n",
            "lib/vendor.min.js": "var a=1;\n",
            "node_modules/pkg/index.js": "module.exports = 1;\n",
            "dist/bundle.js": "var b=2;\n",
            "README.md": "# readme\n",
        }
        for rel, content in files.items():
            path = os.path.join(root, rel)
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                f.write(content)
        with open(os.path.join(root, "src", "blob.js"), "wb") as f:
            f.write(b"var x = 1;\x00\x01\x02")
        cls.provider = ContextProvider(root)

    @classmethod
    def tearDownClass(cls):
        cls.tmp.cleanup()

    def test_discover_files(self):
        self.assertEqual(self.provider.discover_files(), [
            "lib/legacy.cjs", "lib/util.mjs", "src/app.js", "src/blob.js", "src/view.jsx",
        ])

    def test_read_source(self):
        self.assertTrue(self.provider.read_source("src/app.js").startswith("const a = 1;"))

    def test_read_source_absolute_path(self):
        path = os.path.join(self.tmp.name, "src", "app.js")
        self.assertIsNotNone(self.provider.read_source(path))

    def test_binary_file(self):
        self.assertIsNone(self.provider.read_source("src/blob.js"))
        self.assertEqual(self.provider.get_line("src/blob.js", 1), "")

    def test_missing_file(self):
        self.assertIsNone(self.provider.read_source("src/nope.js"))
        self.assertTrue(self.provider.get_code_context("src/nope.js", 1).startswith("Error:"))

    def test_get_line(self):
        self.assertEqual(self.provider.get_line("src/app.js", 2), "const b = a.b;\n")
        self.assertEqual(self.provider.get_line("src/app.js", 99), "")

    def test_get_code_context(self):
        context = self.provider.get_code_context("src/app.js", 2, context_lines=1)
        self.assertEqual(context, "const a = 1;\nconst b = a.b;\nconst c = 3;\n")
        self.assertEqual(self.provider.get_code_context("src/app.js", 1, context_lines=0),
                         "const a = 1;\n")


if __name__ == "__main__":
    unittest.main()
