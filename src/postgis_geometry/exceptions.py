"""
Exception hierarchy for the geometry codec.

Every failure raised by this package subclasses ``GeometryError``, which is
itself a ``ValueError`` so that callers catching ``ValueError`` keep working.
Codec errors carry the offending input fragment in ``fragment``; attribute
errors carry a message suitable for showing to whoever configures a column.
"""


class GeometryError(ValueError):
    """Base exception for all codec and attribute failures."""

    def __init__(self, message: str, fragment: str | None = None):
        super().__init__(message)
        self.fragment = fragment


class MalformedWktError(GeometryError):
    """WKT/EWKT text that cannot be parsed."""


class MalformedWkbError(GeometryError):
    """WKB whose structure is invalid (bad byte order, empty or mismatched parts)."""


class TruncatedWkbError(MalformedWkbError):
    """WKB ended before a read could be satisfied."""


class UnknownWkbTypeError(MalformedWkbError):
    """WKB type code that matches no known kind."""


class OddLengthHexError(GeometryError):
    """Hexadecimal input with an odd number of digits."""


class InvalidHexDigitError(GeometryError):
    """Hexadecimal input containing a non-hex character."""


class UnsupportedGeoJsonTypeError(GeometryError):
    """GeoJSON ``type`` that is not a geometry type handled here."""


class MalformedCoordinatesError(GeometryError):
    """GeoJSON coordinates whose nesting does not match the declared type."""


class UnrecognizedGeometryEncodingError(GeometryError):
    """Raw value that matches none of the supported encodings."""


class NestingTooDeepError(GeometryError):
    """Input nested deeper than the configured maximum depth."""


class TypeAttributeError(GeometryError):
    """Base exception for column attribute failures."""


class InvalidSridError(TypeAttributeError):
    """SRID that is not a positive integer."""


class InvalidDimensionModifierError(TypeAttributeError):
    """Dimension modifier other than "", "Z", "M" or "ZM"."""


class InvalidSubtypeError(TypeAttributeError):
    """Subtype that is not a known geometry kind name."""


class AttributeMismatchError(TypeAttributeError):
    """Geometry value that does not satisfy its column attributes."""
