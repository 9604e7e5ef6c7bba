"""
Feature type derivation from a representative record.

The store never declares a schema up front. Instead it decodes one representative
Placemark (inferring mode, see kmlstore.io.codec), takes that feature's type, and renames
it to the store's logical type name and namespace. The result is cached: every later call
returns the same FeatureType instance.

Sources
- "template": the bundled template.kml resource (default). Lets a store report a schema
  before any data has been written.
- "file": the first Placemark of the backing file; falls back to the template when the
  file is missing, empty, or holds no Placemark.
"""

from __future__ import annotations

import logging
import os
from importlib import resources

from kmlstore.core.schema import FeatureType

from .codec import KmlCodec
from .config import SchemaSource
from .errors import DecodeError, SchemaDerivationError

logger = logging.getLogger("kmlstore.derive")

TEMPLATE_RESOURCE = "template.kml"


class SchemaDeriver:
    """
    Derive (once) the feature type exposed by a store.

    Args:
        codec (KmlCodec): Codec used to decode the representative record.
        type_name (str): Logical type name for the derived type.
        namespace (str | None): Namespace for the derived type.
        path (str | None): Backing file, used when source == "file".
        source (SchemaSource): "template" or "file".
    """

    def __init__(
        self,
        codec: KmlCodec,
        type_name: str,
        namespace: str | None = None,
        *,
        path: str | None = None,
        source: SchemaSource = "template",
    ) -> None:
        self._codec = codec
        self._type_name = type_name
        self._namespace = namespace
        self._path = path
        self._source = source
        self._derived: FeatureType | None = None

    def derive(self) -> FeatureType:
        """
        Return the store's feature type, decoding the representative record on first use.

        Raises:
            SchemaDerivationError: If no representative record can be decoded.
        """
        if self._derived is None:
            template = None
            if self._source == "file":
                template = self._from_file()
            if template is None:
                template = self._from_template()
            self._derived = template.renamed(self._type_name, self._namespace)
            logger.debug(
                "derived feature type %s with attributes %s",
                self._derived.qualified_name,
                ", ".join(self._derived.attribute_names),
            )
        return self._derived

    def _from_template(self) -> FeatureType:
        try:
            with resources.files(__package__).joinpath(TEMPLATE_RESOURCE).open("rb") as fh:
                feature = self._codec.decoder(fh).next()
        except (OSError, DecodeError) as exc:
            raise SchemaDerivationError(f"failed to read feature type template: {exc}") from exc
        if feature is None:
            raise SchemaDerivationError("feature type template holds no Placemark")
        return feature.feature_type

    def _from_file(self) -> FeatureType | None:
        path = self._path
        if path is None or not os.path.isfile(path) or os.path.getsize(path) == 0:
            return None
        try:
            with open(path, "rb") as fh:
                feature = self._codec.decoder(fh).next()
        except (OSError, DecodeError) as exc:
            raise SchemaDerivationError(f"failed to derive feature type from {path!r}: {exc}") from exc
        if feature is None:
            logger.debug("no placemark in %s; using template feature type", path)
            return None
        return feature.feature_type
