"""Runtime shape validation for component data.

Kept apart from fetching: callers opt in after a story is resolved.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, TypeVar

from pydantic import TypeAdapter, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@lru_cache(maxsize=64)
def _adapter(content_type: Any) -> TypeAdapter[Any]:
    return TypeAdapter(content_type)


def validate_blok(data: Any, content_type: type[T]) -> T:
    """Check `data` against `content_type`.

    Returns the parsed value when valid. Data without a `component` field, or
    data that fails validation, is returned unchanged (the failure is logged).
    """
    if not isinstance(data, dict) or "component" not in data:
        return data
    try:
        return _adapter(content_type).validate_python(data)
    except ValidationError as exc:
        logger.warning(
            "validation failed for component %r: %d error(s)",
            data.get("component"),
            exc.error_count(),
        )
        logger.debug("validation detail: %s", exc)
        return data  # type: ignore[return-value]


def blok_errors(data: Any, content_type: Any) -> list[str]:
    """Human-readable validation errors; empty when valid."""
    try:
        _adapter(content_type).validate_python(data)
    except ValidationError as exc:
        return [
            f"{'.'.join(str(part) for part in error['loc']) or '<root>'}: {error['msg']}"
            for error in exc.errors()
        ]
    return []
