"""
Tokenizer shared by keyword indexing and keyword querying.

The same function MUST be used on both sides so that query terms and
indexed terms line up.
"""

import re
from typing import List


# Identifiers such as "INC0012345" and "P1" stay whole.
_TOKEN_SPLIT = re.compile(r"[^\w]+")


def tokenize(text: str) -> List[str]:
    """
    Lower-case ``text`` and split it on any non-word character.

    Examples:
        >>> tokenize("VPN keeps dropping, INC0012345!")
        ['vpn', 'keeps', 'dropping', 'inc0012345']
    """
    if not text or not text.strip():
        return []
    return [token for token in _TOKEN_SPLIT.split(text.lower()) if token]


def within_edit_distance(a: str, b: str, max_edits: int) -> bool:
    """Return True if the Levenshtein distance between ``a`` and ``b`` is <= ``max_edits``."""
    if a == b:
        return True
    if max_edits <= 0 or abs(len(a) - len(b)) > max_edits:
        return False

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i] + [0] * len(b)
        for j, char_b in enumerate(b, start=1):
            current[j] = min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (char_a != char_b),
            )
        if min(current) > max_edits:
            return False
        previous = current
    return previous[-1] <= max_edits
