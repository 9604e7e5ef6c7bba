"""
Feature identifier helpers.

Notes:
    - Identifiers are opaque strings; decoded features keep the Placemark ``id``.
    - Synthesized features (writer append path) get a random UUID4 so two blank
      features never collide.
"""

from __future__ import annotations

import uuid
from typing import NewType

__all__ = ["FeatureId", "new_feature_id"]

FeatureId = NewType("FeatureId", str)


def new_feature_id() -> FeatureId:
    """
    Generate a fresh feature identifier.

    Returns:
        FeatureId: ``"fid-"`` followed by a UUID4 hex string.

    Examples:
        >>> from kmlstore.core.ids import new_feature_id
        >>> new_feature_id().startswith("fid-")
        True
    """
    return FeatureId(f"fid-{uuid.uuid4().hex}")
