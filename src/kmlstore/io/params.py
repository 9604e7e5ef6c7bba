"""
Connection parameters and store construction helpers.

The surrounding application resolves a file location and an optional namespace; this
module validates them and builds a FeatureStore. There is no plugin discovery.

File lookup rules
- The path must carry a .kml extension (case-insensitive).
- An existing path must be a file, not a directory.
- A missing path whose parent directory does not exist is retried beneath the
  current working directory (an absolute path loses its root first). If that does not
  exist either, the given path is kept and the file is created on the first writer close.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from kmlstore.core.constants import KML_EXTENSIONS

from .config import StoreSettings
from .errors import StoreConfigError
from .store import FeatureStore, type_name_for

__all__ = [
    "StoreParams",
    "file_lookup",
    "can_process",
    "open_store",
    "create_store",
    "type_name_for",
]


def file_lookup(path: str | os.PathLike[str]) -> Path:
    """
    Resolve and check a backing file path.

    Raises:
        StoreConfigError: Wrong extension, or the path is a directory.
    """
    p = Path(path)
    if p.suffix.lower() not in KML_EXTENSIONS:
        raise StoreConfigError(f"file does not look like a KML file (wrong extension): {p.absolute()}")
    if p.exists():
        if p.is_dir():
            raise StoreConfigError(f"file is required (not a directory): {p.absolute()}")
        return p
    if not p.parent.exists():
        candidate = Path.cwd() / p.relative_to(p.anchor)
        if candidate.exists():
            return candidate
    return p


class StoreParams(BaseModel):
    """
    Validated construction parameters.

    Attributes:
        file (Path): Backing file (checked with file_lookup()).
        namespace (str | None): Namespace URI for the derived feature type.

    Examples:
        >>> from kmlstore.io.params import StoreParams
        >>> StoreParams(file="places.kml").file.name
        'places.kml'
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    file: Path
    namespace: str | None = None

    @field_validator("file")
    @classmethod
    def _lookup(cls, v: Path) -> Path:
        try:
            return file_lookup(v)
        except StoreConfigError as exc:
            # pydantic wraps ValueError subclasses into ValidationError
            raise ValueError(str(exc)) from exc


def _params(params: StoreParams | Mapping[str, Any]) -> StoreParams:
    if isinstance(params, StoreParams):
        return params
    try:
        return StoreParams.model_validate(dict(params))
    except ValidationError as exc:
        raise StoreConfigError(f"invalid store parameters: {exc}") from exc


def can_process(params: StoreParams | Mapping[str, Any]) -> bool:
    """True when the parameters describe a usable KML file location."""
    try:
        _params(params)
    except StoreConfigError:
        return False
    return True


def open_store(
    params: StoreParams | Mapping[str, Any],
    *,
    settings: StoreSettings | None = None,
) -> FeatureStore:
    """
    Build a store over an existing or not-yet-created KML file.

    Raises:
        StoreConfigError: Invalid parameters.
        SchemaDerivationError: The feature type could not be derived.
    """
    p = _params(params)
    return FeatureStore(p.file, namespace=p.namespace, settings=settings or StoreSettings.load())


def create_store(
    params: StoreParams | Mapping[str, Any],
    *,
    settings: StoreSettings | None = None,
) -> FeatureStore:
    """
    Build a store for a new KML file.

    Raises:
        StoreConfigError: Invalid parameters or the file already exists.
    """
    p = _params(params)
    if p.file.exists():
        raise StoreConfigError(f"{p.file} already exists")
    return FeatureStore(p.file, namespace=p.namespace, settings=settings or StoreSettings.load())
