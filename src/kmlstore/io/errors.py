"""
Custom exceptions for the kmlstore.io module.

Purpose
- Provide IO-layer specific error types that map cleanly to responsibilities in kmlstore.io.
- Keep kmlstore.core as the source of truth for schema/geometry errors (see kmlstore.core.errors).

Source of truth and boundaries
- kmlstore.core.errors.SchemaError is raised when attribute names/values do not fit a FeatureType.
- kmlstore.io raises Store* errors for file/codec/session concerns:
  - StoreConfigError: invalid connection parameters or settings.
  - SchemaDerivationError: the template or first record could not be decoded.
  - DecodeError: backing file contents malformed during reload.
  - EncodeError: writer close failed to serialize or replace the backing file.
  - NoMoreRecordsError: reader next() called while has_next() is False.
  - NoCurrentRecordError: writer write()/remove() without a current feature.
  - SessionClosedError: writer used after a successful close().

Notes
- These exceptions do not perform any IO and are stdlib-only.
"""

from __future__ import annotations


class StoreError(Exception):
    """
    Base class for IO-related errors in kmlstore.io.

    Notes:
        Use this as a catch-all for store failures, distinct from kmlstore.core errors.
    """


class StoreConfigError(StoreError, ValueError):
    """
    Raised when connection parameters or settings are invalid.

    Examples:
        - Backing path without a .kml extension
        - Backing path pointing at a directory
        - create_store() on a file that already exists
    """


class SchemaDerivationError(StoreError):
    """
    Raised when the representative record (template or first file record) cannot be decoded.

    Notes:
        Fatal for store construction: a store cannot exist without a schema.
    """


class DecodeError(StoreError):
    """
    Raised when the backing file is malformed (XML syntax, coordinates, geometry shape).

    Notes:
        A failed reload leaves the live feature list and synced timestamp untouched.
    """


class EncodeError(StoreError):
    """
    Raised when the live feature set could not be written to the backing file.

    Notes:
        The write path is tmp KML → fsync → os.replace(tmp, final). In-memory changes are
        not rolled back; only the on-disk mirror is left stale.
    """


class NoMoreRecordsError(StoreError, LookupError):
    """Raised by FeatureReader.next() when the snapshot is exhausted."""


class NoCurrentRecordError(StoreError):
    """Raised by FeatureWriter.write()/remove() when no feature is current."""


class SessionClosedError(StoreError):
    """Raised when a committed writer is used again."""
