"""
Helpers shared by the source scanners.
Function modules are only ever read as text; these helpers make a plain
character scan safe against delimiters that appear inside strings or comments.
"""
from typing import List, Optional

OPENERS = {"(": ")", "{": "}", "[": "]"}
CLOSERS = set(OPENERS.values())
QUOTES = ("'", '"', "`")


def _blank(chars: List[str], start: int, end: int) -> None:
    for k in range(start, min(end, len(chars))):
        if chars[k] != "\n":
            chars[k] = " "


def mask_source(content: str) -> str:
    """Blank out string literal and comment bodies.

    Quote characters, comment openers/closers and newlines are kept, so offsets
    in the masked text line up with the original and line structure survives.
    Regex literals are not recognized.
    """
    chars = list(content)
    n = len(content)
    i = 0
    while i < n:
        ch = content[i]
        if content.startswith("//", i):
            end = content.find("\n", i)
            end = n if end == -1 else end
            _blank(chars, i + 2, end)
            i = end
        elif content.startswith("/*", i):
            end = content.find("*/", i + 2)
            end = n if end == -1 else end
            _blank(chars, i + 2, end)
            i = end + 2
        elif ch in QUOTES:
            j = i + 1
            while j < n and content[j] != ch:
                if content[j] == "\\":
                    j += 2
                    continue
                # Only template literals may span lines
                if content[j] == "\n" and ch != "`":
                    break
                j += 1
            end = min(j, n)
            _blank(chars, i + 1, end)
            i = end + 1
        else:
            i += 1
    return "".join(chars)


def matching_close(content: str, start: int) -> Optional[int]:
    """Index of the delimiter closing the one at ``start``, or None if unbalanced."""
    stack = [OPENERS[content[start]]]
    for pos in range(start + 1, len(content)):
        ch = content[pos]
        if ch in OPENERS:
            stack.append(OPENERS[ch])
        elif ch in CLOSERS:
            stack.pop()
            if not stack:
                return pos
    return None


def lower_first(s: str) -> str:
    return s[:1].lower() + s[1:]
