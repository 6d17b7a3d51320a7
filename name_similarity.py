"""
Name similarity scoring based on character edit distance.

Names are compared as whole strings, spaces included, so word order
matters: "Bin Laden" and "Laden Bin" are different names.
"""

import re
from typing import Optional

from rapidfuzz.distance import Levenshtein

WHITESPACE_RE = re.compile(r'\s+')


def collapse_whitespace(text: Optional[str]) -> str:
    """Collapse runs of whitespace into single spaces and trim."""
    if not text:
        return ''
    return WHITESPACE_RE.sub(' ', text).strip()


def join_name_parts(*parts: Optional[str]) -> str:
    """Join name components with single spaces, skipping empty ones.

    >>> join_name_parts('John', None, '  Smith ')
    'John Smith'
    """
    return collapse_whitespace(' '.join(p for p in parts if p))


def similarity(a: Optional[str], b: Optional[str]) -> float:
    """Normalized similarity between two names in [0, 1].

    Computed as ``1 - distance / max(len(a), len(b))`` over the lower-cased
    strings, where distance is the unit-cost Levenshtein distance.
    Returns 0.0 when either side is empty or missing.
    """
    if not a or not b:
        return 0.0

    left = a.lower()
    right = b.lower()
    longest = max(len(left), len(right))

    distance = Levenshtein.distance(left, right)
    if distance == 0:
        return 1.0
    return 1.0 - distance / longest
