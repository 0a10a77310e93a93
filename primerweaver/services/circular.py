"""Index arithmetic on circular sequences.

All helpers treat an empty sequence as a no-op instead of dividing by zero.
"""


def wrap(length: int, index: int) -> int:
    """Canonical non-negative position of ``index`` on a circle of ``length``."""
    if length <= 0:
        return 0
    return index % length


def subsequence_circular(seq: str, start: int, end: int) -> str:
    """Substring from start (inclusive) to end (exclusive), wrapping past the origin.

    Start and end are wrapped first; equal positions give the whole circle
    read from ``start``.
    """
    n = len(seq)
    if n == 0:
        return ""
    s = wrap(n, start)
    e = wrap(n, end)
    if s < e:
        return seq[s:e]
    return seq[s:] + seq[:e]


def circular_slice(seq: str, start: int, end: int) -> str:
    """Substring over an unwrapped interval; ``start`` may be negative and ``end`` past the length."""
    n = len(seq)
    if n == 0 or end <= start:
        return ""
    return "".join(seq[i % n] for i in range(start, end))


def rotate(seq: str, offset: int) -> str:
    """Rotate left so that position ``offset`` becomes the new origin."""
    n = len(seq)
    if n == 0:
        return seq
    k = wrap(n, offset)
    return seq[k:] + seq[:k]


def dist_plus(length: int, from_index: int, to_index: int) -> int:
    """Forward distance travelled from one position to another along the circle."""
    if length <= 0:
        return 0
    return (to_index - from_index) % length
