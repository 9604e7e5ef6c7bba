"""
Configuration for the kmlstore.io module.

Defines StoreSettings, a frozen dataclass carrying runtime configuration for store
behavior: missing-file policy, schema source, encoder formatting, and durability.

Loaders
- StoreSettings.from_env(): KMLSTORE_* environment variables.
- StoreSettings.from_toml(): ./kmlstore.toml ([store] table or top-level keys) or
  ./pyproject.toml under [tool.kmlstore.store].
- StoreSettings.load(): precedence env > TOML > defaults.

Import DAG discipline
- Depends only on stdlib.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Literal

MissingFilePolicy = Literal["ignore", "error"]
SchemaSource = Literal["template", "file"]

_TRUE = {"1", "true", "t", "yes", "y", "on"}


@dataclass(frozen=True)
class StoreSettings:
    """
    Runtime settings for the kmlstore.io layer.

    Attributes:
        missing_file (Literal["ignore","error"]): What a reload does when the backing file
            does not exist. "ignore" keeps the in-memory set (the file is created on the
            first writer close); "error" raises DecodeError.
        schema_source (Literal["template","file"]): Representative record used to derive
            the feature type. "file" reads the first Placemark of the backing file and
            falls back to the bundled template when there is none.
        pretty_print (bool): Indent the KML written on flush.
        fsync (bool): fsync the temporary file before the atomic rename.
        document_name (str | None): Optional <Document><name> written on flush.

    Examples:
        >>> from kmlstore.io.config import StoreSettings
        >>> StoreSettings(missing_file="error")  # doctest: +ELLIPSIS
        StoreSettings(...)
    """

    missing_file: MissingFilePolicy = "ignore"
    schema_source: SchemaSource = "template"
    pretty_print: bool = True
    fsync: bool = True
    document_name: str | None = None

    # Configuration loaders (env/TOML) with precedence: env > TOML > defaults.

    @classmethod
    def _apply_mapping(cls, base: StoreSettings, cfg: dict[str, Any] | None) -> StoreSettings:
        """Apply a loose config mapping onto StoreSettings, returning a new instance."""
        if not isinstance(cfg, dict):
            return base

        s = base

        def _bool(v: Any) -> bool:
            if isinstance(v, bool):
                return v
            if isinstance(v, (int, float)):
                return bool(v)
            if isinstance(v, str):
                return v.strip().lower() in _TRUE
            return False

        if "missing_file" in cfg and isinstance(cfg["missing_file"], str):
            mf = cfg["missing_file"].strip().lower()
            if mf in ("ignore", "error"):
                s = replace(s, missing_file=mf)  # type: ignore[arg-type]

        if "schema_source" in cfg and isinstance(cfg["schema_source"], str):
            src = cfg["schema_source"].strip().lower()
            if src in ("template", "file"):
                s = replace(s, schema_source=src)  # type: ignore[arg-type]

        if "pretty_print" in cfg:
            s = replace(s, pretty_print=_bool(cfg["pretty_print"]))

        if "fsync" in cfg:
            s = replace(s, fsync=_bool(cfg["fsync"]))

        if "document_name" in cfg and isinstance(cfg["document_name"], str):
            s = replace(s, document_name=cfg["document_name"] or None)

        return s

    @classmethod
    def from_env(cls, base: StoreSettings | None = None, prefix: str = "KMLSTORE_") -> StoreSettings:
        """
        Build StoreSettings from environment variables. Precedence is env > base (if provided) > defaults.

        Recognized variables:
            - KMLSTORE_MISSING_FILE ("ignore" | "error")
            - KMLSTORE_SCHEMA_SOURCE ("template" | "file")
            - KMLSTORE_PRETTY_PRINT (1/0/true/false/yes/no/on/off)
            - KMLSTORE_FSYNC (1/0/true/false/yes/no/on/off)
            - KMLSTORE_DOCUMENT_NAME
        """
        s = base or cls()

        mapping: dict[str, Any] = {}
        for key in ("missing_file", "schema_source", "pretty_print", "fsync", "document_name"):
            v = os.getenv(prefix + key.upper())
            if v:
                mapping[key] = v
        return cls._apply_mapping(s, mapping)

    @classmethod
    def from_toml(cls, path: str | os.PathLike[str] | None = None) -> StoreSettings:
        """
        Build StoreSettings from a TOML file.

        Search order when `path` is None:
            1) ./kmlstore.toml (with either a top-level [store] table or direct keys)
            2) ./pyproject.toml under [tool.kmlstore.store]

        Returns defaults if no file is present or none carries store settings.
        """
        s = cls()

        cand: list[Path] = []
        if path is not None:
            cand.append(Path(path))
        else:
            cand.append(Path.cwd() / "kmlstore.toml")
            cand.append(Path.cwd() / "pyproject.toml")

        cfg: dict[str, Any] | None = None
        for p in cand:
            if not p.exists():
                continue
            try:
                with p.open("rb") as fh:
                    data = tomllib.load(fh)
            except (OSError, tomllib.TOMLDecodeError):
                continue
            if p.name == "pyproject.toml":
                tool = data.get("tool", {})
                cfg = tool.get("kmlstore", {}).get("store") if isinstance(tool, dict) else None
            elif isinstance(data.get("store"), dict):
                cfg = data["store"]
            else:
                cfg = data
            if cfg:
                break

        return cls._apply_mapping(s, cfg)

    @classmethod
    def load(cls, path: str | os.PathLike[str] | None = None) -> StoreSettings:
        """
        Load StoreSettings applying precedence: environment > TOML > defaults.

        Args:
            path: Optional explicit TOML path. If None, search defaults (kmlstore.toml, pyproject.toml).

        Returns:
            StoreSettings
        """
        s = cls.from_toml(path)
        s = cls.from_env(base=s)
        return s
