"""
Context Provider

Reads JavaScript sources from a workspace, retrieves the lines around a
diagnostic, and discovers lintable files.

Guards:
  • Skips binary files (null-byte check)
  • Caps reads at MAX_LINES to prevent memory issues
  • Handles encoding errors gracefully
"""

import os
import logging
from typing import List, Optional

logger = logging.getLogger(__name__)

MAX_LINES = 100_000  # safety cap for very large files

# File extensions we lint
JS_EXTENSIONS = {".js", ".jsx", ".mjs", ".cjs"}

_SKIP_DIRS = {
    ".git", "node_modules", "dist", "build", "coverage",
    "__pycache__", ".vscode", ".idea", ".next", "venv",
}


def _norm_path(p: str) -> str:
    """Normalise a path to forward slashes so stored and queried paths compare equal."""
    return p.replace("\\", "/")


class ContextProvider:
    def __init__(self, workspace_root: str):
        self.workspace_root = workspace_root

    # ────────────────────────────────────────────────────────────────
    #  Internal helpers
    # ────────────────────────────────────────────────────────────────

    def resolve(self, file_path: str) -> str:
        if os.path.isabs(file_path):
            return file_path
        native = file_path.replace("/", os.sep).replace("\\", os.sep)
        return os.path.join(self.workspace_root, native)

    @staticmethod
    def _is_binary(full_path: str) -> bool:
        with open(full_path, "rb") as fb:
            return b"\x00" in fb.read(8192)

    @classmethod
    def _read_lines(cls, full_path: str) -> Optional[List[str]]:
        """Read file lines with binary-file guard and size cap."""
        if not os.path.isfile(full_path):
            return None
        try:
            if cls._is_binary(full_path):
                logger.warning("Skipping binary file: %s", full_path)
                return None
            with open(full_path, "r", encoding="utf-8", errors="replace") as f:
                lines = []
                for i, line in enumerate(f):
                    if i >= MAX_LINES:
                        logger.warning("File %s exceeds %d lines, truncated", full_path, MAX_LINES)
                        break
                    lines.append(line)
                return lines
        except OSError as e:
            logger.error("Error reading %s: %s", full_path, e)
            return None

    # ────────────────────────────────────────────────────────────────
    #  Source text
    # ────────────────────────────────────────────────────────────────

    def read_source(self, file_path: str) -> Optional[str]:
        """Whole file as text, or None if missing, binary, or unreadable."""
        full_path = self.resolve(file_path)
        if not os.path.isfile(full_path):
            return None
        try:
            if self._is_binary(full_path):
                logger.warning("Skipping binary file: %s", full_path)
                return None
            with open(full_path, "r", encoding="utf-8") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Cannot read %s: %s", full_path, e)
            return None

    def get_code_context(
        self, file_path: str, line_number: int, context_lines: int = 3
    ) -> str:
        """Retrieve code surrounding a specific line number."""
        lines = self._read_lines(self.resolve(file_path))
        if lines is None:
            return f"Error: Cannot read {file_path}"

        start = max(0, line_number - 1 - context_lines)
        end = min(len(lines), line_number + context_lines)
        return "".join(lines[start:end])

    def get_line(self, file_path: str, line_number: int) -> str:
        """Return a single line from a file (1-indexed)."""
        lines = self._read_lines(self.resolve(file_path))
        if lines is None:
            return ""
        if 1 <= line_number <= len(lines):
            return lines[line_number - 1]
        return ""

    # ────────────────────────────────────────────────────────────────
    #  Discovery
    # ────────────────────────────────────────────────────────────────

    def discover_files(self) -> List[str]:
        """All JS sources under the workspace, relative and sorted."""
        files = []
        for root, dirs, filenames in os.walk(self.workspace_root):
            dirs[:] = [d for d in dirs if d not in _SKIP_DIRS]
            for fname in filenames:
                if fname.endswith(".min.js"):
                    continue
                ext = os.path.splitext(fname)[1].lower()
                if ext in JS_EXTENSIONS:
                    rel = _norm_path(os.path.relpath(os.path.join(root, fname), self.workspace_root))
                    files.append(rel)
        return sorted(files)
