"""Value sanitizer — makes an arbitrary value tree safe for the remote store.

Every write path (module sync, profile updates, administrative status changes)
passes its payload through ``sanitize`` before it reaches the document store.

Rules:
  - UNSET is dropped: dict keys holding it are removed, list elements that
    sanitize to it are removed. A top-level UNSET comes back as UNSET;
    write paths use ``sanitize_or`` to turn that into a concrete default.
  - None and CLEARED become None. Explicit null is meaningful on merge-writes.
  - NaN becomes None.
  - Present(v) is unwrapped and v is sanitized.
  - Pydantic models are dumped by alias with unset fields excluded.
  - Dicts and lists are rebuilt, so the result shares no containers with the
    input. Anything else (str, int, bool, datetime, store sentinels) is
    returned as-is.

The transform is pure and never raises, and applying it twice gives the same
result as applying it once.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

from studydesk_shared.fields import CLEARED, UNSET, Present


def sanitize(value: Any) -> Any:
    """Return a copy of ``value`` with absent markers removed and NaN nulled."""
    if value is UNSET:
        return UNSET
    if value is None or value is CLEARED:
        return None
    if isinstance(value, Present):
        return sanitize(value.value)
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, BaseModel):
        return sanitize(value.model_dump(by_alias=True, exclude_unset=True))
    if isinstance(value, Mapping):
        result: dict[Any, Any] = {}
        for key, item in value.items():
            cleaned = sanitize(item)
            if cleaned is not UNSET:
                result[key] = cleaned
        return result
    if isinstance(value, (list, tuple)):
        return [cleaned for cleaned in (sanitize(item) for item in value) if cleaned is not UNSET]
    return value


def sanitize_or(value: Any, default: Any = None) -> Any:
    """``sanitize(value)``, with ``default`` in place of a top-level UNSET."""
    cleaned = sanitize(value)
    return default if cleaned is UNSET else cleaned
