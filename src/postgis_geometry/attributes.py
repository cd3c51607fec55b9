"""
Column type attributes: validation and SQL type names.

A PostGIS column is declared as ``geometry`` or ``geography`` optionally
narrowed by a subtype, a dimension modifier and an SRID, for example
``geometry(POINTZ,3857)``. This module checks those attributes and builds
the type name from them.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .exceptions import (
    AttributeMismatchError,
    InvalidDimensionModifierError,
    InvalidSridError,
    InvalidSubtypeError,
    TypeAttributeError,
)
from .geometry import Geometry

# WGS84 longitude/latitude
DEFAULT_SRID = 4326

DIM_MODS = ("", "Z", "M", "ZM")

# Subtypes accepted by a generic geometry or geography column
BASE_GEOM_TYPES = (
    "GEOMETRY",
    "POINT",
    "LINESTRING",
    "POLYGON",
    "MULTIPOINT",
    "MULTILINESTRING",
    "MULTIPOLYGON",
    "GEOMETRYCOLLECTION",
    "CIRCULARSTRING",
    "COMPOUNDCURVE",
    "CURVEPOLYGON",
    "MULTICURVE",
    "MULTISURFACE",
    "POLYHEDRALSURFACE",
    "TIN",
    "TRIANGLE",
)


@dataclass
class TypeAttributes:
    """
    Attributes a column type was configured with.

    Attributes:
        srid: Spatial reference ID, or None when not given
        dim: Dimension modifier ("", "Z", "M" or "ZM"), or None
        subtype: Geometry kind name narrowing the column, or None
    """

    srid: Any = None
    dim: Any = None
    subtype: Any = None

    @classmethod
    def from_mapping(cls, attrs: Mapping[str, Any] | None) -> "TypeAttributes":
        """Read srid, dim and subtype from a mapping; other keys are ignored"""
        if attrs is None:
            return cls()
        return cls(
            srid=attrs.get("srid"),
            dim=attrs.get("dim"),
            subtype=attrs.get("subtype"),
        )


AttributesLike = TypeAttributes | Mapping[str, Any] | None


def _coerce(attrs: AttributesLike) -> TypeAttributes:
    if isinstance(attrs, TypeAttributes):
        return attrs
    return TypeAttributes.from_mapping(attrs)


def validate_attributes(attrs: AttributesLike) -> bool:
    """
    Validate column type attributes.

    Absent attributes (None values, or an empty subtype) are not checked.
    ``dim`` and ``subtype`` are compared case-insensitively.

    Args:
        attrs: TypeAttributes, a mapping with srid/dim/subtype keys, or None

    Returns:
        True

    Raises:
        InvalidSridError: If srid is not an integer of at least 1
        InvalidDimensionModifierError: If dim is not "", "Z", "M" or "ZM"
        InvalidSubtypeError: If subtype is not a known geometry kind name

    Example:
        >>> validate_attributes({"srid": 4326, "dim": "zm"})
        True
    """
    attrs = _coerce(attrs)

    srid = attrs.srid
    if srid is not None:
        if isinstance(srid, bool) or not isinstance(srid, int) or srid < 1:
            raise InvalidSridError(
                "SRID must be a positive integer", fragment=repr(srid)
            )

    if attrs.dim is not None and str(attrs.dim).upper() not in DIM_MODS:
        raise InvalidDimensionModifierError(
            'Invalid dim (use "", "Z", "M" or "ZM")', fragment=repr(attrs.dim)
        )

    if attrs.subtype and str(attrs.subtype).upper() not in BASE_GEOM_TYPES:
        raise InvalidSubtypeError(
            "Invalid geometry subtype", fragment=repr(attrs.subtype)
        )

    return True


def check_attributes(attrs: AttributesLike) -> bool | str:
    """
    Validate attributes for display in a configuration form.

    Returns:
        True when valid, otherwise the human-readable failure message
    """
    try:
        return validate_attributes(attrs)
    except TypeAttributeError as e:
        return str(e)


def build_type_name(
    base: str,
    default_subtype: str = "",
    attrs: AttributesLike = None,
    default_srid: int | None = DEFAULT_SRID,
) -> str:
    """
    Build the SQL type name used to declare a column.

    Never fails; attributes are expected to have passed validate_attributes().

    Args:
        base: "GEOMETRY" or "GEOGRAPHY" (any case)
        default_subtype: Subtype used when attrs gives none
        attrs: Column attributes
        default_srid: SRID used when attrs gives none. Passing None allows
            the bare base name when there is neither subtype nor SRID.

    Returns:
        ``base(SUBTYPE[DIM],SRID)``, ``base(SUBTYPE[DIM])``,
        ``base(Geometry,SRID)`` or ``base``, with base lower-cased

    Example:
        >>> build_type_name("GEOMETRY", "POINT", {"srid": 3857, "dim": "Z"})
        'geometry(POINTZ,3857)'
        >>> build_type_name("GEOGRAPHY")
        'geography(Geometry,4326)'
    """
    attrs = _coerce(attrs)
    base_name = base.lower()

    srid = attrs.srid if attrs.srid is not None else default_srid
    subtype = attrs.subtype or default_subtype

    if subtype:
        dim = str(attrs.dim).upper() if attrs.dim else ""
        subtype = str(subtype).upper()
        if srid is None:
            return f"{base_name}({subtype}{dim})"
        return f"{base_name}({subtype}{dim},{srid})"
    if srid is not None:
        return f"{base_name}(Geometry,{srid})"
    return base_name


def validate_value_matches_attributes(
    geometry: Geometry | None, attrs: AttributesLike
) -> bool:
    """
    Check that a geometry value satisfies its column's attributes.

    Only the constraints the column actually sets are enforced:

    - srid: the value's SRID must match when both are known
    - dim: a non-empty modifier must equal the value's dimensionality
    - subtype: anything but GEOMETRY must equal the value's kind

    Args:
        geometry: Parsed value, or None (always accepted)
        attrs: Column attributes

    Returns:
        True

    Raises:
        AttributeMismatchError: If the value breaks a constraint
        TypeAttributeError: If the attributes themselves are invalid

    Example:
        >>> point = parse_wkt("SRID=4326;POINT Z (1 2 3)")
        >>> validate_value_matches_attributes(point, {"srid": 4326, "dim": "z"})
        True
    """
    attrs = _coerce(attrs)
    validate_attributes(attrs)
    if geometry is None:
        return True

    if attrs.srid is not None and geometry.srid is not None:
        if geometry.srid != attrs.srid:
            raise AttributeMismatchError(
                f"Value has SRID {geometry.srid}, column requires {attrs.srid}",
                fragment=str(geometry.srid),
            )

    if attrs.dim:
        required = str(attrs.dim).upper()
        actual = geometry.dimensionality.suffix
        if actual != required:
            raise AttributeMismatchError(
                f"Value has dimension modifier {actual or 'none'!r}, "
                f"column requires {required!r}",
                fragment=geometry.kind.keyword + actual,
            )

    if attrs.subtype:
        required = str(attrs.subtype).upper()
        if required != "GEOMETRY" and geometry.kind.keyword != required:
            raise AttributeMismatchError(
                f"Value is a {geometry.kind.keyword}, column requires {required}",
                fragment=geometry.kind.keyword,
            )

    return True
