from typing import Optional, Sequence

from chart_registry.domain.errors import NotFoundError


def latest_version(identifiers: Sequence[str], package: Optional[str] = None) -> str:
    """
    Return the latest of ``identifiers``.

    The storage backend lists versions in ascending order, so the latest one
    is simply the last. An empty listing means the package exists but has
    no metadata to report.
    """
    if not identifiers:
        raise NotFoundError("metadata", package or "")
    return identifiers[-1]
