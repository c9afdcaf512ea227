"""Hadoop-style glob patterns for object keys.

Supported syntax:
- ``*`` matches any run of characters within one path segment
- ``**`` matches across segments
- ``?`` matches a single character other than ``/``
- ``[abc]``, ``[a-z]``, ``[^a]``/``[!a]`` character classes
- ``{a,b}`` alternation, nestable
- ``\\`` escapes the next character
"""

from __future__ import annotations

import re

GLOB_CHARS = frozenset("*?[{\\")


def has_wildcard(pattern: str) -> bool:
    """Return True if ``pattern`` contains any glob metacharacter."""
    return any(ch in GLOB_CHARS for ch in pattern)


def literal_prefix(pattern: str) -> str:
    """Return the part of ``pattern`` before its first metacharacter.

    Used as the listing prefix so that only candidate keys are fetched.
    """
    for index, ch in enumerate(pattern):
        if ch in GLOB_CHARS:
            return pattern[:index]
    return pattern


def translate(pattern: str) -> str:  # noqa: C901, PLR0912 - single-pass tokenizer
    """Translate a glob into an anchored regular expression string.

    Raises:
        ValueError: If a character class or brace group is not closed.

    """
    out: list[str] = []
    depth = 0
    i = 0
    n = len(pattern)
    while i < n:
        ch = pattern[i]
        if ch == "\\":
            i += 1
            if i < n:
                out.append(re.escape(pattern[i]))
        elif ch == "*":
            if i + 1 < n and pattern[i + 1] == "*":
                out.append(".*")
                i += 1
            else:
                out.append("[^/]*")
        elif ch == "?":
            out.append("[^/]")
        elif ch == "[":
            end = pattern.find("]", i + 2)
            if end == -1:
                raise ValueError(f"Unclosed character class in glob: {pattern}")
            body = pattern[i + 1 : end]
            if body[0] in "!^":
                body = "^" + body[1:].replace("\\", "\\\\")
            else:
                body = body.replace("\\", "\\\\")
            out.append(f"[{body}]")
            i = end
        elif ch == "{":
            depth += 1
            out.append("(?:")
        elif ch == "}" and depth > 0:
            depth -= 1
            out.append(")")
        elif ch == "," and depth > 0:
            out.append("|")
        else:
            out.append(re.escape(ch))
        i += 1
    if depth:
        raise ValueError(f"Unclosed brace group in glob: {pattern}")
    return "^" + "".join(out) + "$"


def compile_glob(pattern: str) -> re.Pattern[str]:
    """Compile a glob into a regular expression.

    Raises:
        ValueError: If the pattern is malformed, e.g. an unclosed group or a
            reversed character range.

    """
    try:
        return re.compile(translate(pattern), re.DOTALL)
    except re.error as e:
        raise ValueError(f"Invalid glob: {pattern} ({e})") from e
