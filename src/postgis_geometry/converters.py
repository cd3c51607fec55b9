"""
Output format converters for geometry data.

This module provides functions to convert geometries to and from:
- GeoJSON geometry objects (RFC 7946)
- Shapely geometries
- Other coordinate reference systems (using pyproj)
"""

import json
import math
from collections.abc import Callable, Mapping
from typing import Any

import shapely
from pyproj import CRS, Transformer
from shapely.geometry import mapping, shape
from shapely.geometry.base import BaseGeometry

from .exceptions import MalformedCoordinatesError, UnsupportedGeoJsonTypeError
from .geometry import Dimensionality, Geometry, GeometryKind, Position

GEOJSON_TYPES: dict[GeometryKind, str] = {
    GeometryKind.POINT: "Point",
    GeometryKind.LINESTRING: "LineString",
    GeometryKind.POLYGON: "Polygon",
    GeometryKind.MULTIPOINT: "MultiPoint",
    GeometryKind.MULTILINESTRING: "MultiLineString",
    GeometryKind.MULTIPOLYGON: "MultiPolygon",
    GeometryKind.GEOMETRYCOLLECTION: "GeometryCollection",
}

_KINDS_BY_GEOJSON = {name: kind for kind, name in GEOJSON_TYPES.items()}

# Linear kind each curve or surface kind is drawn as
LINEAR_EQUIVALENTS: dict[GeometryKind, GeometryKind] = {
    GeometryKind.CIRCULARSTRING: GeometryKind.LINESTRING,
    GeometryKind.COMPOUNDCURVE: GeometryKind.LINESTRING,
    GeometryKind.CURVEPOLYGON: GeometryKind.POLYGON,
    GeometryKind.TRIANGLE: GeometryKind.POLYGON,
    GeometryKind.MULTICURVE: GeometryKind.MULTILINESTRING,
    GeometryKind.MULTISURFACE: GeometryKind.MULTIPOLYGON,
    GeometryKind.POLYHEDRALSURFACE: GeometryKind.MULTIPOLYGON,
    GeometryKind.TIN: GeometryKind.MULTIPOLYGON,
}

WGS84_SRID = 4326


def _curve_positions(geom: Geometry) -> list[Position]:
    """Vertices of a LineString, CircularString or CompoundCurve"""
    if geom.is_empty:
        return []
    if geom.kind is GeometryKind.COMPOUNDCURVE:
        positions: list[Position] = []
        for segment in geom.geometries or []:
            vertices = _curve_positions(segment)
            # Consecutive segments share their joining vertex
            if positions and vertices and positions[-1] == vertices[0]:
                vertices = vertices[1:]
            positions.extend(vertices)
        return positions
    return list(geom.coordinates)


def _surface_rings(geom: Geometry) -> list[list[Position]]:
    """Rings of a Polygon, Triangle or CurvePolygon"""
    if geom.is_empty:
        return []
    if geom.kind is GeometryKind.CURVEPOLYGON:
        rings = [_curve_positions(ring) for ring in geom.geometries or []]
        return [ring for ring in rings if ring]
    return [list(ring) for ring in geom.coordinates]


def linearize_geometry(geometry: Geometry) -> Geometry:
    """
    Replace curve and surface kinds with their linear equivalent.

    Arcs are not densified: a CircularString becomes the LineString through
    its control points. Linear kinds are returned as copies unchanged;
    collections are linearized member by member.

    Example:
        >>> arc = parse_wkt("CIRCULARSTRING(0 0,1 1,2 0)")
        >>> linearize_geometry(arc).kind.keyword
        'LINESTRING'
    """
    kind = geometry.kind
    if kind is GeometryKind.GEOMETRYCOLLECTION:
        members = None
        if geometry.geometries is not None:
            members = [linearize_geometry(g) for g in geometry.geometries]
        return Geometry(
            kind,
            geometries=members,
            dimensionality=geometry.dimensionality,
            srid=geometry.srid,
        )

    target = LINEAR_EQUIVALENTS.get(kind, kind)
    if geometry.is_empty:
        coordinates = None
    elif kind is GeometryKind.COMPOUNDCURVE:
        coordinates = _curve_positions(geometry) or None
    elif kind is GeometryKind.CURVEPOLYGON:
        coordinates = _surface_rings(geometry) or None
    elif kind is GeometryKind.MULTICURVE:
        lines = [_curve_positions(g) for g in geometry.geometries or []]
        coordinates = [line for line in lines if line] or None
    elif kind is GeometryKind.MULTISURFACE:
        polygons = [_surface_rings(g) for g in geometry.geometries or []]
        coordinates = [poly for poly in polygons if poly] or None
    else:
        coordinates = _map_coordinates(geometry.coordinates, kind.depth, tuple)
    return Geometry(
        target,
        coordinates=coordinates,
        dimensionality=geometry.dimensionality,
        srid=geometry.srid,
    )


def _map_coordinates(
    coords: Any, depth: int, func: Callable[[Position], Position]
) -> Any:
    if depth == 1:
        return func(coords)
    return [_map_coordinates(c, depth - 1, func) for c in coords]


def _map_positions(
    geometry: Geometry,
    func: Callable[[Position], Position],
    dimensionality: Dimensionality | None = None,
) -> Geometry:
    """Return a new geometry with func applied to every position"""
    if geometry.geometries is not None:
        members = [_map_positions(g, func, dimensionality) for g in geometry.geometries]
        return Geometry(
            geometry.kind,
            geometries=members,
            dimensionality=dimensionality or geometry.dimensionality,
            srid=geometry.srid,
        )
    coordinates = None
    if geometry.coordinates is not None:
        coordinates = _map_coordinates(geometry.coordinates, geometry.kind.depth, func)
    return Geometry(
        geometry.kind,
        coordinates=coordinates,
        dimensionality=dimensionality or geometry.dimensionality,
        srid=geometry.srid,
    )


def _to_lists(coords: Any, depth: int, planar: bool) -> list[Any]:
    if depth == 1:
        return list(coords[:2]) if planar else list(coords)
    return [_to_lists(c, depth - 1, planar) for c in coords]


def to_geojson_geometry(
    geom: Geometry | None, planar: bool = False, linearize: bool = False
) -> dict[str, Any] | None:
    """
    Convert geometry to GeoJSON geometry object.

    SRID is not carried; callers wanting RFC 7946 output in WGS84 should
    reproject first (see reproject_geometry).

    Args:
        geom: Geometry object, or None
        planar: If True, keep only the first two ordinates of every position
        linearize: If True, curve and surface kinds (which GeoJSON cannot
            express) are output as their linear equivalent instead of failing

    Returns:
        GeoJSON geometry dictionary, or None when geom is None

    Raises:
        UnsupportedGeoJsonTypeError: For curve and surface kinds when
            linearize is False

    Example:
        >>> to_geojson_geometry(parse_wkt("POINT(-122 47)"))
        {'type': 'Point', 'coordinates': [-122.0, 47.0]}
    """
    if geom is None:
        return None

    if linearize and geom.kind in LINEAR_EQUIVALENTS:
        geom = linearize_geometry(geom)

    type_name = GEOJSON_TYPES.get(geom.kind)
    if type_name is None:
        raise UnsupportedGeoJsonTypeError(
            f"{geom.kind.keyword} has no GeoJSON equivalent (use linearize=True)",
            fragment=geom.kind.keyword,
        )

    if geom.kind is GeometryKind.GEOMETRYCOLLECTION:
        return {
            "type": type_name,
            "geometries": [
                to_geojson_geometry(g, planar=planar, linearize=linearize)
                for g in geom.geometries or []
            ],
        }

    coordinates: list[Any] = []
    if geom.coordinates is not None:
        coordinates = _to_lists(geom.coordinates, geom.kind.depth, planar)
    return {"type": type_name, "coordinates": coordinates}


class _PositionReader:
    """Validates GeoJSON positions and tracks their shared ordinate count"""

    def __init__(self, type_name: str):
        self.type_name = type_name
        self.dimensionality: Dimensionality | None = None

    def fail(self, message: str, value: Any) -> MalformedCoordinatesError:
        return MalformedCoordinatesError(
            f"{self.type_name}: {message}", fragment=json.dumps(value, default=str)[:64]
        )

    def read(self, coords: Any, depth: int) -> Any:
        if not isinstance(coords, (list, tuple)):
            raise self.fail("expected an array", coords)
        if depth == 1:
            return self.read_position(coords)
        if not coords:
            raise self.fail("empty array inside coordinates", coords)
        return [self.read(c, depth - 1) for c in coords]

    def read_position(self, coords: list[Any] | tuple[Any, ...]) -> Position:
        if len(coords) < 2:
            raise self.fail("position needs at least two numbers", coords)
        for value in coords:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise self.fail("position contains a non-numeric value", coords)
            if not math.isfinite(value):
                raise self.fail("position contains a non-finite value", coords)

        # A third ordinate is taken as Z; anything after it is dropped
        position = tuple(float(v) for v in coords[:3])
        dimensionality = Dimensionality.XY if len(position) == 2 else Dimensionality.XYZ
        if self.dimensionality is None:
            self.dimensionality = dimensionality
        elif self.dimensionality is not dimensionality:
            raise self.fail("positions mix 2 and 3 ordinates", coords)
        return position


def from_geojson_geometry(obj: Mapping[str, Any] | str | None) -> Geometry | None:
    """
    Convert a GeoJSON geometry object to a Geometry.

    SRID is never set. Positions with three or more ordinates are read as
    XYZ (M is never inferred).

    Args:
        obj: GeoJSON geometry as a mapping or JSON text; None means no value

    Returns:
        The geometry, or None for absent input

    Raises:
        UnsupportedGeoJsonTypeError: If ``type`` is not a GeoJSON geometry type
        MalformedCoordinatesError: If coordinates do not match the type

    Example:
        >>> geom = from_geojson_geometry({"type": "Point", "coordinates": [1, 2]})
        >>> geom.wkt
        'POINT(1 2)'
    """
    if obj is None:
        return None
    if isinstance(obj, str):
        if not obj.strip():
            return None
        try:
            obj = json.loads(obj)
        except json.JSONDecodeError as e:
            raise MalformedCoordinatesError(
                f"Invalid GeoJSON text: {e}", fragment=obj[:64]
            ) from e

    if not isinstance(obj, Mapping):
        raise UnsupportedGeoJsonTypeError(
            "GeoJSON geometry must be an object", fragment=str(obj)[:64]
        )

    type_name = obj.get("type")
    kind = _KINDS_BY_GEOJSON.get(type_name) if isinstance(type_name, str) else None
    if kind is None:
        raise UnsupportedGeoJsonTypeError(
            f"Unsupported GeoJSON geometry type {type_name!r}", fragment=str(type_name)
        )

    if kind is GeometryKind.GEOMETRYCOLLECTION:
        members = obj.get("geometries")
        if not isinstance(members, (list, tuple)):
            raise MalformedCoordinatesError(
                "GeometryCollection: 'geometries' must be an array",
                fragment=str(members)[:64],
            )
        if not members:
            return Geometry(kind)
        geometries = []
        for member in members:
            if member is None:
                raise MalformedCoordinatesError(
                    "GeometryCollection: member geometry is null", fragment="null"
                )
            geometries.append(from_geojson_geometry(member))
        return Geometry(
            kind, geometries=geometries, dimensionality=geometries[0].dimensionality
        )

    reader = _PositionReader(type_name)
    coords = obj.get("coordinates")
    if isinstance(coords, (list, tuple)) and len(coords) == 0:
        return Geometry(kind)
    coordinates = reader.read(coords, kind.depth)
    assert reader.dimensionality is not None
    return Geometry(kind, coordinates=coordinates, dimensionality=reader.dimensionality)


def get_transformer(
    source_crs: str | int | CRS,
    target_crs: str | int | CRS,
) -> Transformer:
    """
    Create a pyproj Transformer for coordinate reprojection.

    Args:
        source_crs: Source coordinate reference system (SRID, EPSG string,
            WKT, or CRS object). Integers are read as EPSG codes.
        target_crs: Target coordinate reference system, same forms

    Returns:
        A pyproj Transformer instance with x/y (lon/lat) axis order.

    Example:
        >>> transformer = get_transformer(3857, 4326)
        >>> lon, lat = transformer.transform(-13410713.258, 5894992.591)
    """
    if isinstance(source_crs, int):
        source_crs = f"EPSG:{source_crs}"
    if isinstance(target_crs, int):
        target_crs = f"EPSG:{target_crs}"
    return Transformer.from_crs(source_crs, target_crs, always_xy=True)


def reproject_geometry(
    geom: Geometry, target_srid: int, source_srid: int | None = None
) -> Geometry:
    """
    Reproject a geometry from its SRID to another.

    Uses pyproj for accurate coordinate transformation. Only X and Y are
    transformed; Z and M ordinates are carried over unchanged.

    Args:
        geom: Geometry object to reproject
        target_srid: EPSG code of the target system
        source_srid: EPSG code of the source system; defaults to geom.srid

    Returns:
        A new Geometry with transformed coordinates and srid=target_srid

    Raises:
        ValueError: If neither source_srid nor geom.srid is set

    Example:
        >>> pt = parse_wkt("SRID=3857;POINT(-13410713.258 5894992.591)")
        >>> lon, lat = reproject_geometry(pt, 4326).coordinates
        >>> round(lon, 4), round(lat, 4)
        (-120.4705, 46.7108)
    """
    source = source_srid or geom.srid
    if source is None:
        raise ValueError("Cannot reproject a geometry without an SRID")

    transformer = get_transformer(source, target_srid)

    def transform(position: Position) -> Position:
        x, y = transformer.transform(position[0], position[1])
        return (x, y, *position[2:])

    reprojected = _map_positions(geom, transform)
    reprojected.srid = target_srid
    return reprojected


def _drop_m(geom: Geometry) -> Geometry:
    """Copy of geom without M ordinates, which shapely cannot hold"""
    if geom.kind is GeometryKind.GEOMETRYCOLLECTION and geom.geometries is not None:
        # Members may each have their own dimensionality
        members = [_drop_m(g) for g in geom.geometries]
        return Geometry(
            geom.kind,
            geometries=members,
            dimensionality=members[0].dimensionality,
            srid=geom.srid,
        )
    if geom.dimensionality is Dimensionality.XYM:
        return _map_positions(geom, lambda p: p[:2], Dimensionality.XY)
    if geom.dimensionality is Dimensionality.XYZM:
        return _map_positions(geom, lambda p: p[:3], Dimensionality.XYZ)
    return geom


def to_shapely(geom: Geometry) -> BaseGeometry:
    """
    Convert a geometry to a Shapely geometry.

    Curve and surface kinds are linearized and M ordinates dropped, since
    Shapely models neither.

    Args:
        geom: Geometry object from this library

    Returns:
        Corresponding Shapely geometry object
    """
    geom = linearize_geometry(_drop_m(geom))
    if geom.is_empty:
        return shapely.from_wkt(f"{geom.kind.keyword} EMPTY")
    return shape(to_geojson_geometry(geom))


def from_shapely(geom: BaseGeometry, srid: int | None = None) -> Geometry:
    """
    Convert a Shapely geometry to a Geometry.

    Args:
        geom: Shapely geometry
        srid: SRID to attach, since Shapely geometries carry none

    Returns:
        The equivalent Geometry
    """
    result = from_geojson_geometry(mapping(geom))
    assert result is not None
    result.srid = srid or None
    return result
