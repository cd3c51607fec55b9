"""
Canonicalization of raw geometry column values.

Whatever a database driver hands back for a geometry or geography column
(EWKT text, hex-encoded EWKB, raw WKB bytes, or hex wrapped in a helper
expression such as ``ST_GeomFromEWKB('\\x0101...')``) is reduced to EWKT
text by normalize(). Dispatch order, first match wins:

    1. Helper-expression wrapper carrying a hex payload
    2. Text that already starts with [SRID=<n>;]KEYWORD
    3. Hexadecimal text (optionally with a bytea ``\\x`` prefix) or raw bytes

A rule whose pattern matched but whose payload is malformed raises its own
error instead of falling through to the next rule.
"""

import logging
import re
from typing import Any

from .config import CodecConfig
from .converters import WGS84_SRID, reproject_geometry, to_geojson_geometry
from .decoder import decode_wkb, hex_to_bytes
from .exceptions import (
    GeometryError,
    TruncatedWkbError,
    UnrecognizedGeometryEncodingError,
)
from .geometry import Geometry, GeometryKind
from .wkt import parse_wkt, to_wkt

logger = logging.getLogger(__name__)

# name(payload[, more arguments]); a quoted payload is taken whatever it holds,
# an unquoted one only when it is hex
_WRAPPER_RE = re.compile(
    r"""
    ^\s*
    (?P<func>[A-Za-z_][\w.]*)\s*\(\s*
    (?:'(?P<quoted>[^'(),\s]+)'|(?P<bare>(?:\\x)?(?:[0-9A-Fa-f]{2})+))
    (?:\s*,[^()]*)?
    \s*\)\s*$
    """,
    re.VERBOSE,
)

# payload::type or 'payload'::type(modifiers)
_CAST_RE = re.compile(
    r"""
    ^\s*
    (?:'(?P<quoted>[^'(),\s]+)'|(?P<bare>(?:\\x)?(?:[0-9A-Fa-f]{2})+))
    \s*::\s*[A-Za-z_]\w*(?:\s*\([^()]*\))?
    \s*$
    """,
    re.VERBOSE,
)

_EWKT_RE = re.compile(r"^\s*(?:SRID=[^;]*;)?\s*(?P<word>[A-Za-z]+)")

_HEX_RE = re.compile(r"^\s*(?:\\x)?[0-9A-Fa-f]+\s*$")

_BYTEA_PREFIX = "\\x"

_FRAGMENT_LENGTH = 64


def _is_geometry_keyword(word: str) -> bool:
    """True for a WKT keyword, with or without an attached Z/M/ZM suffix"""
    word = word.upper()
    if GeometryKind.from_keyword(word) is not None:
        return True
    for suffix in ("ZM", "Z", "M"):
        stem = word[: -len(suffix)]
        if word.endswith(suffix) and GeometryKind.from_keyword(stem) is not None:
            return True
    return False


def _hex_payload(match: re.Match) -> str:
    """The wrapped hex text without quotes or a bytea prefix"""
    payload = _strip_bytea_prefix(match.group("quoted") or match.group("bare"))
    if not payload:
        raise TruncatedWkbError(
            "Wrapped WKB payload is empty", fragment=match.group(0)[:_FRAGMENT_LENGTH]
        )
    return payload


def _strip_bytea_prefix(payload: str) -> str:
    payload = payload.strip()
    if payload[:2].lower() == _BYTEA_PREFIX:
        return payload[2:]
    return payload


def _classify(raw: Any) -> tuple[str, Any] | None:
    """
    Work out which encoding a raw value uses.

    Returns:
        ("ewkt", text) or ("wkb", bytes), or None for an absent value
    """
    if raw is None:
        return None

    if isinstance(raw, (bytes, bytearray, memoryview)):
        if len(raw) == 0:
            return None
        logger.debug("Decoding %d bytes of raw WKB", len(raw))
        return "wkb", bytes(raw)

    if not isinstance(raw, str):
        raise UnrecognizedGeometryEncodingError(
            f"Cannot read a geometry from a {type(raw).__name__} value",
            fragment=repr(raw)[:_FRAGMENT_LENGTH],
        )

    if not raw.strip():
        return None

    match = _WRAPPER_RE.match(raw)
    if match and not _is_geometry_keyword(match.group("func")):
        logger.debug("Unwrapping hex payload from %s(...)", match.group("func"))
        return "wkb", hex_to_bytes(_hex_payload(match))

    match = _CAST_RE.match(raw)
    if match:
        logger.debug("Unwrapping hex payload from a cast expression")
        return "wkb", hex_to_bytes(_hex_payload(match))

    match = _EWKT_RE.match(raw)
    if match and _is_geometry_keyword(match.group("word")):
        return "ewkt", raw

    if _HEX_RE.match(raw):
        logger.debug("Decoding %d characters of hex WKB", len(raw.strip()))
        return "wkb", hex_to_bytes(_strip_bytea_prefix(raw))

    raise UnrecognizedGeometryEncodingError(
        "Value is not EWKT, hex WKB or a wrapped hex payload",
        fragment=raw[:_FRAGMENT_LENGTH],
    )


def normalize(raw: Any, config: CodecConfig | None = None) -> str | None:
    """
    Reduce a raw geometry column value to EWKT text.

    Text that is already WKT or EWKT is returned unchanged; every binary
    form is decoded and serialized with to_wkt().

    Args:
        raw: Text, hex text, wrapped hex text, or WKB bytes
        config: Codec limits used while decoding WKB

    Returns:
        EWKT text, or None for None, empty or blank input

    Raises:
        UnrecognizedGeometryEncodingError: If no encoding matches
        OddLengthHexError, InvalidHexDigitError: For a bad hex payload
        MalformedWkbError: For a bad WKB payload (and its subclasses)

    Example:
        >>> normalize("0101000020E61000000000000000003E400000000000002440")
        'SRID=4326;POINT(30 10)'
        >>> normalize("POINT(1 2)")
        'POINT(1 2)'
        >>> normalize(None) is None
        True
    """
    classified = _classify(raw)
    if classified is None:
        return None
    encoding, payload = classified
    if encoding == "ewkt":
        return payload
    return to_wkt(decode_wkb(payload, config))


def to_geometry(raw: Any, config: CodecConfig | None = None) -> Geometry | None:
    """
    Decode a raw geometry column value to a Geometry.

    Same dispatch as normalize(), except EWKT text is parsed as well, so
    malformed WKT raises MalformedWktError here.
    """
    classified = _classify(raw)
    if classified is None:
        return None
    encoding, payload = classified
    if encoding == "ewkt":
        return parse_wkt(payload, config)
    return decode_wkb(payload, config)


def normalize_to_geojson(
    raw: Any,
    to_wgs84: bool = False,
    planar: bool = False,
    linearize: bool = False,
    config: CodecConfig | None = None,
) -> dict[str, Any] | None:
    """
    Decode a raw geometry column value straight to a GeoJSON geometry.

    Args:
        raw: Any value normalize() accepts
        to_wgs84: If True, geometries with an SRID other than 4326 are
            reprojected to WGS84 first, as RFC 7946 expects
        planar: If True, keep only X and Y
        linearize: If True, output curve and surface kinds as their linear
            equivalent instead of failing
        config: Codec limits

    Returns:
        GeoJSON geometry dictionary, or None for absent input
    """
    geometry = to_geometry(raw, config)
    if geometry is None:
        return None
    if to_wgs84 and geometry.srid and geometry.srid != WGS84_SRID:
        logger.debug("Reprojecting SRID %d to WGS84", geometry.srid)
        geometry = reproject_geometry(geometry, WGS84_SRID)
    return to_geojson_geometry(geometry, planar=planar, linearize=linearize)


def point_lat_lng(value: Any) -> tuple[float, float] | None:
    """
    Get (latitude, longitude) from a Point value.

    The value may be a Geometry or anything normalize() accepts. X is taken
    as longitude and Y as latitude, whatever the SRID.

    Returns:
        (lat, lng), or None when the value is absent, empty or not a Point

    Raises:
        GeometryError: If the value cannot be read as a geometry
    """
    geometry = value if isinstance(value, Geometry) else to_geometry(value)
    if geometry is None or geometry.kind is not GeometryKind.POINT:
        return None
    if geometry.is_empty:
        return None
    lng, lat = geometry.coordinates[:2]
    return lat, lng


def derived_point_fields(column: str, value: Any) -> dict[str, float]:
    """
    Derived latitude and longitude fields for a Point column value.

    Meant to be called by the host for each row; the result is merged into
    the row next to the column itself. A value that cannot be read gives no
    fields and a logged warning.

    Example:
        >>> derived_point_fields("location", "SRID=4326;POINT(153.02 -27.47)")
        {'location_lat': -27.47, 'location_lng': 153.02}
    """
    try:
        lat_lng = point_lat_lng(value)
    except GeometryError as e:
        logger.warning("Cannot derive lat/lng for column %s: %s", column, e)
        return {}
    if lat_lng is None:
        return {}
    lat, lng = lat_lng
    return {f"{column}_lat": lat, f"{column}_lng": lng}
