from typing import Optional, Tuple


def compute_window(total: int, start: Optional[int] = None, limit: Optional[int] = None) -> Tuple[int, int]:
    """
    Clamp a requested page to a listing of ``total`` entries.

    Returns a ``[start, end)`` pair with ``0 <= start <= end <= total``.
    A missing or negative ``start`` means 0; a missing or non-positive
    ``limit`` means "up to the end".
    """
    total = max(total, 0)
    start = min(max(start or 0, 0), total)
    if not limit or limit <= 0:
        return start, total
    return start, min(start + limit, total)
