"""Repository selection by glob pattern.

Patterns are shell-style globs where `/`, `-`, `.` and `_` are ordinary
characters, so a single `*` spans path segments:

    RepoSelector("backend-*").match("backend-payments/service")  # (True, "")

Supported syntax: `*`, `?`, `[abc]`, `[!abc]` and `{a,b}` alternatives.
"""

from __future__ import annotations

import fnmatch
import re
from collections.abc import Iterable, Sequence

__all__ = ["RepoSelector", "compile_glob", "expand_braces"]


def expand_braces(pattern: str) -> list[str]:
    """Expand `{a,b}` alternatives into plain glob patterns.

    Unbalanced braces are kept literally.
    """
    start = pattern.find("{")
    if start < 0:
        return [pattern]

    depth = 0
    for end in range(start, len(pattern)):
        ch = pattern[end]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                break
    else:
        return [pattern]

    prefix, body, suffix = pattern[:start], pattern[start + 1 : end], pattern[end + 1 :]

    options: list[str] = []
    depth = 0
    current = ""
    for ch in body:
        if ch == "," and depth == 0:
            options.append(current)
            current = ""
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
        current += ch
    options.append(current)

    expanded: list[str] = []
    for option in options:
        expanded.extend(expand_braces(prefix + option + suffix))
    return expanded


def compile_glob(pattern: str) -> re.Pattern[str]:
    """Compile a glob into a regex matching whole strings, case-sensitively."""
    alternatives = [fnmatch.translate(p) for p in expand_braces(pattern)]
    return re.compile("|".join(f"(?:{alt})" for alt in alternatives))


class RepoSelector:
    """Classify repository paths as selected, excluded or not matching.

    Attributes:
        pattern: Inclusion glob ("" matches everything)
        excludes: Exclusion globs, checked in declaration order
    """

    def __init__(self, pattern: str = "", excludes: Sequence[str] = ()) -> None:
        self.pattern = pattern
        self.excludes = tuple(excludes)
        self._pattern_re = compile_glob(pattern) if pattern else None
        self._exclude_res = [compile_glob(p) for p in self.excludes]

    def match(self, path: str) -> tuple[bool, str]:
        """Return (selected, reason). The reason is empty when selected."""
        for exclude, regex in zip(self.excludes, self._exclude_res, strict=True):
            if regex.match(path):
                return (False, f"'{path}' matched exclusion '{exclude}'")

        if self._pattern_re is not None and not self._pattern_re.match(path):
            return (False, f"'{path}' did not match '{self.pattern}'")

        return (True, "")

    def is_selected(self, path: str) -> bool:
        return self.match(path)[0]

    def select(self, paths: Iterable[str]) -> list[str]:
        """Keep only the selected paths, preserving order."""
        return [p for p in paths if self.is_selected(p)]

    def __repr__(self) -> str:
        return f"RepoSelector({self.pattern!r}, excludes={list(self.excludes)!r})"
