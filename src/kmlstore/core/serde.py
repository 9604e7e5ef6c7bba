"""
Canonical JSON helpers.

Provides a single canonical JSON policy used when map-valued attributes are flattened
into text (e.g., the tabular view built by kmlstore.io.store.FeatureStore.to_frame).
This module is zero-IO.

Notes:
    - Canonical JSON:
        - sort_keys=True
        - separators=(",", ":")
        - ensure_ascii=False
    - Re-ordering keys in a mapping does not change the output.
"""

from __future__ import annotations

import json
from typing import Any

__all__ = [
    "json_dumps_canonical",
]


def json_dumps_canonical(obj: Any) -> str:
    """
    Serialize an object to a canonical JSON string.

    Args:
        obj (Any): JSON-serializable object.

    Returns:
        str: Canonical JSON string with sort_keys=True, compact separators,
        and ensure_ascii=False.

    Examples:
        >>> from kmlstore.core.serde import json_dumps_canonical
        >>> json_dumps_canonical({"b": "2", "a": "1"})
        '{"a":"1","b":"2"}'
    """
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
