"""
Catalogue of the column types exposed to a host application.

Two generic types (geometry and geography) accept any subtype; every other
entry is geometry narrowed to one concrete kind.

Example:
    >>> point = get_type("point")
    >>> point.type_name({"srid": 3857, "dim": "Z"})
    'geometry(POINTZ,3857)'
    >>> [a.name for a in point.attributes]
    ['srid', 'dim']
"""

from dataclasses import dataclass
from typing import Any

from .attributes import (
    BASE_GEOM_TYPES,
    DEFAULT_SRID,
    DIM_MODS,
    AttributesLike,
    build_type_name,
    validate_attributes,
)
from .canonical import normalize


@dataclass(frozen=True)
class AttributeSpec:
    """One configurable attribute of a column type, as shown in a form"""

    name: str
    label: str
    type: str
    default: Any = None
    options: tuple[str, ...] | None = None


@dataclass(frozen=True)
class TypeSpec:
    """
    A column type.

    Attributes:
        name: Lower-case type name
        base: "GEOMETRY" or "GEOGRAPHY"
        subtype: Kind the type is narrowed to, or "" for the generic types
        allow_dim: Whether a dimension modifier may be configured
        allow_subtype: Whether a subtype may be configured
    """

    name: str
    base: str
    subtype: str = ""
    allow_dim: bool = True
    allow_subtype: bool = False

    @property
    def sql_name(self) -> str:
        """Lower-case base type name"""
        return self.base.lower()

    @property
    def description(self) -> str:
        return f"PostGIS {self.subtype or self.base} value"

    @property
    def attributes(self) -> list[AttributeSpec]:
        attrs = [AttributeSpec("srid", "SRID", "Integer", default=DEFAULT_SRID)]
        if self.allow_dim:
            attrs.append(AttributeSpec("dim", "Dim", "String", options=DIM_MODS))
        if self.allow_subtype:
            attrs.append(
                AttributeSpec("subtype", "Subtype", "String", options=BASE_GEOM_TYPES)
            )
        return attrs

    def type_name(self, attrs: AttributesLike = None) -> str:
        """SQL type name for a column of this type with the given attributes"""
        return build_type_name(self.base, self.subtype, attrs)

    def validate_attributes(self, attrs: AttributesLike) -> bool:
        return validate_attributes(attrs)

    def read(self, value: Any) -> str | None:
        """Read a column value as EWKT text"""
        return normalize(value)


def _concrete(subtype: str) -> TypeSpec:
    return TypeSpec(subtype.lower(), "GEOMETRY", subtype)


TYPE_CATALOGUE: tuple[TypeSpec, ...] = (
    TypeSpec("geometry", "GEOMETRY", allow_subtype=True),
    TypeSpec("geography", "GEOGRAPHY", allow_subtype=True),
    *(_concrete(subtype) for subtype in BASE_GEOM_TYPES[1:]),
)

_TYPES_BY_NAME = {spec.name: spec for spec in TYPE_CATALOGUE}


def get_type(name: str) -> TypeSpec | None:
    """Look up a catalogue entry by type name (case-insensitive)"""
    return _TYPES_BY_NAME.get(name.lower())


def type_names() -> list[str]:
    return [spec.name for spec in TYPE_CATALOGUE]
