"""
Geometry value model shared by the WKT, WKB and GeoJSON codecs.

A geometry is one tagged value: its kind, its dimensionality, an optional
SRID and either nested coordinates or, for collection-like kinds, a list of
child geometries. Positions are tuples of floats; every level above a
position is a list.
"""

import copy
from collections.abc import Iterator
from dataclasses import dataclass, replace
from enum import Enum, IntEnum
from typing import Any

# A single position: (x, y), (x, y, z), (x, y, m) or (x, y, z, m)
Position = tuple[float, ...]


class GeometryKind(IntEnum):
    """Geometry kinds keyed by their WKB base type code"""

    POINT = 1
    LINESTRING = 2
    POLYGON = 3
    MULTIPOINT = 4
    MULTILINESTRING = 5
    MULTIPOLYGON = 6
    GEOMETRYCOLLECTION = 7
    CIRCULARSTRING = 8
    COMPOUNDCURVE = 9
    CURVEPOLYGON = 10
    MULTICURVE = 11
    MULTISURFACE = 12
    # 13 (Curve) and 14 (Surface) are abstract and never appear in data
    POLYHEDRALSURFACE = 15
    TIN = 16
    TRIANGLE = 17

    @property
    def keyword(self) -> str:
        """The upper-case WKT keyword"""
        return self.name

    @property
    def depth(self) -> int:
        """
        Nesting depth of the coordinates: 1 for a bare position, 2 for a
        list of positions, and so on. 0 for kinds that hold child geometries.
        """
        return _COORDINATE_DEPTH.get(self, 0)

    @property
    def has_children(self) -> bool:
        """True for kinds whose members are geometries rather than coordinates"""
        return self in CONTAINER_MEMBERS

    @property
    def member_kind(self) -> "GeometryKind | None":
        """Kind of each part in the WKB encoding of a multi-part kind"""
        return _PART_KINDS.get(self)

    @classmethod
    def from_keyword(cls, keyword: str) -> "GeometryKind | None":
        """Look up a kind by WKT keyword (case-insensitive)"""
        return cls.__members__.get(keyword.upper())


class Dimensionality(Enum):
    """Ordinates carried by each position, valued by the WKT suffix"""

    XY = ""
    XYZ = "Z"
    XYM = "M"
    XYZM = "ZM"

    @property
    def suffix(self) -> str:
        return self.value

    @property
    def has_z(self) -> bool:
        return "Z" in self.value

    @property
    def has_m(self) -> bool:
        return "M" in self.value

    @property
    def ordinates(self) -> int:
        return 2 + len(self.value)

    @classmethod
    def from_suffix(cls, suffix: str) -> "Dimensionality":
        return cls(suffix.upper())

    @classmethod
    def from_flags(cls, has_z: bool, has_m: bool) -> "Dimensionality":
        return cls(("Z" if has_z else "") + ("M" if has_m else ""))

    @classmethod
    def from_ordinates(cls, count: int) -> "Dimensionality | None":
        """
        Infer dimensionality from an ordinate count. Three ordinates are read
        as Z; an M ordinate is only ever declared, never inferred.
        """
        return {2: cls.XY, 3: cls.XYZ, 4: cls.XYZM}.get(count)


_COORDINATE_DEPTH: dict[GeometryKind, int] = {
    GeometryKind.POINT: 1,
    GeometryKind.LINESTRING: 2,
    GeometryKind.CIRCULARSTRING: 2,
    GeometryKind.MULTIPOINT: 2,
    GeometryKind.POLYGON: 3,
    GeometryKind.MULTILINESTRING: 3,
    GeometryKind.TRIANGLE: 3,
    GeometryKind.MULTIPOLYGON: 4,
    GeometryKind.POLYHEDRALSURFACE: 4,
    GeometryKind.TIN: 4,
}

_PART_KINDS: dict[GeometryKind, GeometryKind] = {
    GeometryKind.MULTIPOINT: GeometryKind.POINT,
    GeometryKind.MULTILINESTRING: GeometryKind.LINESTRING,
    GeometryKind.MULTIPOLYGON: GeometryKind.POLYGON,
    GeometryKind.POLYHEDRALSURFACE: GeometryKind.POLYGON,
    GeometryKind.TIN: GeometryKind.TRIANGLE,
}

_CURVES = frozenset(
    {GeometryKind.LINESTRING, GeometryKind.CIRCULARSTRING, GeometryKind.COMPOUNDCURVE}
)

# Kinds holding child geometries: (kind of a bare parenthesised member in WKT,
# kinds allowed as members). GeometryCollection takes any keyword member.
CONTAINER_MEMBERS: dict[
    GeometryKind, tuple[GeometryKind | None, frozenset[GeometryKind] | None]
] = {
    GeometryKind.GEOMETRYCOLLECTION: (None, None),
    GeometryKind.COMPOUNDCURVE: (
        GeometryKind.LINESTRING,
        frozenset({GeometryKind.LINESTRING, GeometryKind.CIRCULARSTRING}),
    ),
    GeometryKind.CURVEPOLYGON: (GeometryKind.LINESTRING, _CURVES),
    GeometryKind.MULTICURVE: (GeometryKind.LINESTRING, _CURVES),
    GeometryKind.MULTISURFACE: (
        GeometryKind.POLYGON,
        frozenset({GeometryKind.POLYGON, GeometryKind.CURVEPOLYGON}),
    ),
}


@dataclass
class Geometry:
    """
    A geometry value of any kind.

    Attributes:
        kind: The geometry kind
        coordinates: Nested coordinates whose depth follows ``kind.depth``,
            or None when empty or when the kind holds child geometries
        geometries: Child geometries for collection-like kinds, or None
        dimensionality: Ordinates carried by every position
        srid: Spatial reference ID; None means unspecified (never 0)
    """

    kind: GeometryKind
    coordinates: Any = None
    geometries: list["Geometry"] | None = None
    dimensionality: Dimensionality = Dimensionality.XY
    srid: int | None = None

    @property
    def is_empty(self) -> bool:
        return self.coordinates is None and self.geometries is None

    @property
    def is_collection(self) -> bool:
        return self.kind.has_children

    @property
    def wkt(self) -> str:
        """EWKT text for this geometry"""
        from .wkt import to_wkt

        return to_wkt(self)

    def positions(self) -> Iterator[Position]:
        """Iterate over every position, descending into child geometries"""
        if self.geometries is not None:
            for child in self.geometries:
                yield from child.positions()
        elif self.coordinates is not None:
            yield from _walk(self.coordinates, self.kind.depth)


def _walk(coords: Any, depth: int) -> Iterator[Position]:
    if depth == 1:
        yield coords
        return
    for item in coords:
        yield from _walk(item, depth - 1)


def is_empty(geometry: Geometry) -> bool:
    """True when the geometry is an explicit EMPTY"""
    return geometry.is_empty


def srid_of(geometry: Geometry) -> int | None:
    return geometry.srid


def with_srid(geometry: Geometry, srid: int | None) -> Geometry:
    """
    Return a copy of the geometry carrying a new SRID.

    An SRID of 0 or None clears it. The copy shares nothing with the input.
    """
    return replace(copy.deepcopy(geometry), srid=srid or None)


def kind_name(geometry: Geometry) -> str:
    """Get the geometry kind's WKT keyword"""
    return geometry.kind.keyword
