"""
PostGIS Geometry Codec

Read and write the geometry encodings PostGIS hands to client code, without
a database connection.

This library provides pure Python WKT/EWKT parsing and serialization, a
WKB/EWKB decoder for the hex text PostGIS returns, GeoJSON conversion, and
validation of the attributes used to declare geometry columns.

Example:
    >>> from postgis_geometry import normalize, parse_wkt, to_geojson_geometry
    >>>
    >>> normalize("0101000020E61000000000000000003E400000000000002440")
    'SRID=4326;POINT(30 10)'
    >>> geom = parse_wkt("SRID=4326;LINESTRING(0 0,1 1)")
    >>> to_geojson_geometry(geom)
    {'type': 'LineString', 'coordinates': [[0.0, 0.0], [1.0, 1.0]]}

Column types Example:
    >>> from postgis_geometry import build_type_name, validate_attributes
    >>>
    >>> validate_attributes({"srid": 3857, "dim": "z"})
    True
    >>> build_type_name("GEOMETRY", "POINT", {"srid": 3857, "dim": "Z"})
    'geometry(POINTZ,3857)'
"""

__version__ = "0.1.0"

from .config import (
    CodecConfig,
    DEFAULT_MAX_DEPTH,
)

from .exceptions import (
    GeometryError,
    MalformedWktError,
    MalformedWkbError,
    TruncatedWkbError,
    UnknownWkbTypeError,
    OddLengthHexError,
    InvalidHexDigitError,
    UnsupportedGeoJsonTypeError,
    MalformedCoordinatesError,
    UnrecognizedGeometryEncodingError,
    NestingTooDeepError,
    TypeAttributeError,
    InvalidSridError,
    InvalidDimensionModifierError,
    InvalidSubtypeError,
    AttributeMismatchError,
)

from .geometry import (
    Geometry,
    GeometryKind,
    Dimensionality,
    Position,
    is_empty,
    srid_of,
    with_srid,
)

from .wkt import (
    parse_wkt,
    to_wkt,
)

from .decoder import (
    WKBDecoder,
    decode_wkb,
    decode_wkb_hex,
)

from .converters import (
    to_geojson_geometry,
    from_geojson_geometry,
    linearize_geometry,
    reproject_geometry,
    get_transformer,
    to_shapely,
    from_shapely,
)

from .canonical import (
    normalize,
    normalize_to_geojson,
    to_geometry,
    point_lat_lng,
    derived_point_fields,
)

from .attributes import (
    DEFAULT_SRID,
    DIM_MODS,
    BASE_GEOM_TYPES,
    TypeAttributes,
    validate_attributes,
    check_attributes,
    build_type_name,
    validate_value_matches_attributes,
)

from .catalogue import (
    AttributeSpec,
    TypeSpec,
    TYPE_CATALOGUE,
    get_type,
)

__all__ = [
    # Version
    "__version__",
    # Configuration
    "CodecConfig",
    "DEFAULT_MAX_DEPTH",
    # Errors
    "GeometryError",
    "MalformedWktError",
    "MalformedWkbError",
    "TruncatedWkbError",
    "UnknownWkbTypeError",
    "OddLengthHexError",
    "InvalidHexDigitError",
    "UnsupportedGeoJsonTypeError",
    "MalformedCoordinatesError",
    "UnrecognizedGeometryEncodingError",
    "NestingTooDeepError",
    "TypeAttributeError",
    "InvalidSridError",
    "InvalidDimensionModifierError",
    "InvalidSubtypeError",
    "AttributeMismatchError",
    # Geometry model
    "Geometry",
    "GeometryKind",
    "Dimensionality",
    "Position",
    "is_empty",
    "srid_of",
    "with_srid",
    # WKT
    "parse_wkt",
    "to_wkt",
    # WKB
    "WKBDecoder",
    "decode_wkb",
    "decode_wkb_hex",
    # Converters
    "to_geojson_geometry",
    "from_geojson_geometry",
    "linearize_geometry",
    "reproject_geometry",
    "get_transformer",
    "to_shapely",
    "from_shapely",
    # Canonicalizer
    "normalize",
    "normalize_to_geojson",
    "to_geometry",
    "point_lat_lng",
    "derived_point_fields",
    # Column attributes
    "DEFAULT_SRID",
    "DIM_MODS",
    "BASE_GEOM_TYPES",
    "TypeAttributes",
    "validate_attributes",
    "check_attributes",
    "build_type_name",
    "validate_value_matches_attributes",
    # Type catalogue
    "AttributeSpec",
    "TypeSpec",
    "TYPE_CATALOGUE",
    "get_type",
]
