"""
Edit Distance and Similarity

Typo-tolerant comparison of free-text answers. Every function here is pure
and total: absent or non-string input degrades to the worst score rather
than raising.
"""

from typing import Any, Optional

DEFAULT_THRESHOLD = 0.8


def normalize(text: Any) -> Optional[str]:
    """
    Case-fold and trim a candidate string.

    Returns None for anything that is not a string so callers can treat
    it as an absent answer.
    """
    if not isinstance(text, str):
        return None
    return text.strip().lower()


def _distance(s1: str, s2: str) -> int:
    # Two-row dynamic programme over the shorter string.
    if len(s1) < len(s2):
        s1, s2 = s2, s1
    if not s2:
        return len(s1)

    previous = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1, start=1):
        current = [i]
        for j, c2 in enumerate(s2, start=1):
            if c1 == c2:
                current.append(previous[j - 1])
            else:
                current.append(1 + min(
                    previous[j],        # deletion
                    current[j - 1],     # insertion
                    previous[j - 1]     # substitution
                ))
        previous = current
    return previous[-1]


def levenshtein_distance(str1: Any, str2: Any) -> int:
    """
    Number of single-character insertions, deletions and substitutions
    needed to turn one string into the other.

    Comparison is case-insensitive and ignores leading and trailing
    whitespace. An absent string counts as empty.

    Args:
        str1: First string
        str2: Second string

    Returns:
        Edit distance (symmetric in its arguments)
    """
    return _distance(normalize(str1) or "", normalize(str2) or "")


def similarity(str1: Any, str2: Any) -> float:
    """
    Normalised inverse edit distance in [0, 1].

    ``1 - distance / max(len1, len2)`` over the trimmed, case-folded
    strings. Two strings that are both empty after trimming are identical
    (1.0); any comparison involving an absent string scores 0.0.
    """
    s1 = normalize(str1)
    s2 = normalize(str2)
    if s1 is None or s2 is None:
        return 0.0

    max_len = max(len(s1), len(s2))
    if max_len == 0:
        return 1.0

    return (max_len - _distance(s1, s2)) / max_len


def is_close_match(user_input: Any, correct_answer: Any, threshold: float = DEFAULT_THRESHOLD) -> bool:
    """
    Binary verdict used by the recall-by-name game.

    True on a case and whitespace insensitive exact match, otherwise when
    the similarity reaches ``threshold``.

    >>> is_close_match("amzel", "Amsel")
    True
    """
    s1 = normalize(user_input)
    s2 = normalize(correct_answer)
    if s1 is None or s2 is None:
        return False

    if s1 == s2:
        return True

    return similarity(s1, s2) >= threshold
