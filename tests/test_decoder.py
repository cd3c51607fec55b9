"""Tests for the WKB/EWKB decoder."""

import logging
import math
import struct

import pytest

from postgis_geometry import (
    CodecConfig,
    Dimensionality,
    GeometryKind,
    InvalidHexDigitError,
    MalformedWkbError,
    NestingTooDeepError,
    OddLengthHexError,
    TruncatedWkbError,
    UnknownWkbTypeError,
    WKBDecoder,
    decode_wkb,
    decode_wkb_hex,
)
from postgis_geometry.decoder import WKB_SRID_FLAG, WKB_Z_FLAG, hex_to_bytes

# SRID=4326;POINT(30 10), little-endian EWKB as PostGIS returns it
POINT_4326_HEX = "0101000020E61000000000000000003E400000000000002440"


def header(code: int, endian: str = "<", srid: int | None = None) -> bytes:
    """Byte order flag, type code and optional SRID"""
    order = 1 if endian == "<" else 0
    if srid is None:
        return struct.pack(f"{endian}BI", order, code)
    return struct.pack(f"{endian}BII", order, code | WKB_SRID_FLAG, srid)


def point(*ordinates: float, code: int = 1, endian: str = "<") -> bytes:
    return header(code, endian) + struct.pack(f"{endian}{len(ordinates)}d", *ordinates)


def linestring(*positions: tuple[float, float], code: int = 2) -> bytes:
    body = struct.pack("<I", len(positions))
    for position in positions:
        body += struct.pack("<2d", *position)
    return header(code) + body


def collection(code: int, *members: bytes, srid: int | None = None) -> bytes:
    return header(code, srid=srid) + struct.pack("<I", len(members)) + b"".join(members)


class TestHexToBytes:
    def test_valid(self):
        assert hex_to_bytes("0aFF") == b"\x0a\xff"

    def test_odd_length(self):
        with pytest.raises(OddLengthHexError):
            hex_to_bytes("010")

    def test_invalid_digit(self):
        with pytest.raises(InvalidHexDigitError) as exc_info:
            hex_to_bytes("01GG")
        assert exc_info.value.fragment == "GG"


class TestWKBDecoder:
    def test_decoder_init_default(self):
        decoder = WKBDecoder()
        assert decoder.config.max_depth == 32

    def test_decoder_init_custom(self):
        decoder = WKBDecoder(CodecConfig(max_depth=4))
        assert decoder.config.max_depth == 4

    def test_parse_type_code(self):
        decoder = WKBDecoder()
        assert decoder.parse_type_code(0x20000001) == (
            GeometryKind.POINT,
            Dimensionality.XY,
            True,
        )
        assert decoder.parse_type_code(3002) == (
            GeometryKind.LINESTRING,
            Dimensionality.XYZM,
            False,
        )
        assert decoder.parse_type_code(0xE0000003) == (
            GeometryKind.POLYGON,
            Dimensionality.XYZM,
            True,
        )
        assert decoder.parse_type_code(2017)[:2] == (
            GeometryKind.TRIANGLE,
            Dimensionality.XYM,
        )

    def test_parse_unknown_type_code(self):
        decoder = WKBDecoder()
        with pytest.raises(UnknownWkbTypeError):
            decoder.parse_type_code(13)
        with pytest.raises(UnknownWkbTypeError):
            decoder.parse_type_code(4001)


class TestDecodePoint:
    def test_ewkb_point_with_srid(self):
        geom = decode_wkb_hex(POINT_4326_HEX)
        assert geom.kind is GeometryKind.POINT
        assert geom.coordinates == (30.0, 10.0)
        assert geom.srid == 4326
        assert geom.wkt == "SRID=4326;POINT(30 10)"

    def test_lowercase_hex(self):
        assert decode_wkb_hex(POINT_4326_HEX.lower()).srid == 4326

    def test_big_endian(self):
        geom = decode_wkb(point(30.0, 10.0, endian=">"))
        assert geom.coordinates == (30.0, 10.0)
        assert geom.srid is None

    def test_iso_z(self):
        geom = decode_wkb(point(1.0, 2.0, 3.0, code=1001))
        assert geom.dimensionality is Dimensionality.XYZ
        assert geom.wkt == "POINTZ(1 2 3)"

    def test_ewkb_z_flag(self):
        geom = decode_wkb(point(1.0, 2.0, 3.0, code=1 | WKB_Z_FLAG))
        assert geom.dimensionality is Dimensionality.XYZ

    def test_iso_m_and_zm(self):
        geom = decode_wkb(point(1, 2, 3, code=2001))
        assert geom.dimensionality is Dimensionality.XYM
        geom = decode_wkb(point(1, 2, 3, 4, code=3001))
        assert geom.dimensionality is Dimensionality.XYZM
        assert geom.coordinates == (1.0, 2.0, 3.0, 4.0)

    def test_nan_point_is_empty(self):
        geom = decode_wkb(point(math.nan, math.nan))
        assert geom.is_empty
        assert geom.wkt == "POINT EMPTY"

    @pytest.mark.parametrize(
        "ordinates", [(1.0, math.nan), (math.inf, 2.0), (1.0, 2.0, -math.inf)]
    )
    def test_non_finite_ordinate_rejected(self, ordinates):
        code = 1001 if len(ordinates) == 3 else 1
        with pytest.raises(MalformedWkbError, match="Non-finite"):
            decode_wkb(point(*ordinates, code=code))

    def test_non_finite_in_linestring_rejected(self):
        with pytest.raises(MalformedWkbError):
            decode_wkb(linestring((0, 0), (1, math.nan)))

    def test_srid_zero_is_unspecified(self):
        data = header(1, srid=0) + struct.pack("<2d", 1.0, 2.0)
        assert decode_wkb(data).srid is None

    def test_absent_input(self):
        assert decode_wkb(None) is None
        assert decode_wkb(b"") is None
        assert decode_wkb_hex(None) is None
        assert decode_wkb_hex("") is None


class TestDecodeCollections:
    def test_linestring(self):
        geom = decode_wkb(linestring((0, 0), (1, 1), (2, 2)))
        assert geom.kind is GeometryKind.LINESTRING
        assert geom.coordinates == [(0.0, 0.0), (1.0, 1.0), (2.0, 2.0)]

    def test_empty_linestring(self):
        geom = decode_wkb(linestring())
        assert geom.is_empty
        assert geom.wkt == "LINESTRING EMPTY"

    def test_polygon(self):
        ring = [(0, 0), (10, 0), (10, 10), (0, 0)]
        body = struct.pack("<II", 1, len(ring))
        for position in ring:
            body += struct.pack("<2d", *position)
        geom = decode_wkb(header(3) + body)
        assert geom.wkt == "POLYGON((0 0,10 0,10 10,0 0))"

    def test_multipoint(self):
        geom = decode_wkb(collection(4, point(10, 40), point(40, 30)))
        assert geom.kind is GeometryKind.MULTIPOINT
        assert geom.coordinates == [(10.0, 40.0), (40.0, 30.0)]

    def test_multilinestring(self):
        data = collection(5, linestring((0, 0), (1, 1)), linestring((2, 2), (3, 3)))
        assert decode_wkb(data).wkt == "MULTILINESTRING((0 0,1 1),(2 2,3 3))"

    def test_geometry_collection_with_srid(self):
        data = collection(7, point(4, 6), linestring((4, 6), (7, 10)), srid=4326)
        geom = decode_wkb(data)
        assert geom.wkt == (
            "SRID=4326;GEOMETRYCOLLECTION(POINT(4 6),LINESTRING(4 6,7 10))"
        )

    def test_mixed_byte_order(self):
        geom = decode_wkb(collection(7, point(1, 2, endian=">"), point(3, 4)))
        assert [g.coordinates for g in geom.geometries] == [(1.0, 2.0), (3.0, 4.0)]

    def test_empty_collection(self):
        geom = decode_wkb(collection(7))
        assert geom.is_empty
        assert geom.wkt == "GEOMETRYCOLLECTION EMPTY"

    def test_compound_curve(self):
        data = collection(9, linestring((0, 0), (1, 1), (1, 0), code=8))
        geom = decode_wkb(data)
        assert geom.wkt == "COMPOUNDCURVE(CIRCULARSTRING(0 0,1 1,1 0))"

    def test_multipoint_rejects_wrong_member(self):
        with pytest.raises(MalformedWkbError, match="expected POINT"):
            decode_wkb(collection(4, linestring((0, 0), (1, 1))))

    def test_multipoint_rejects_empty_member(self):
        with pytest.raises(MalformedWkbError, match="empty"):
            decode_wkb(collection(4, point(math.nan, math.nan)))

    def test_multipoint_rejects_mixed_dimensionality(self):
        with pytest.raises(MalformedWkbError, match="dimensionality"):
            decode_wkb(collection(4, point(1, 2, 3, code=1001)))

    def test_nesting_depth(self):
        data = collection(7, collection(7, point(1, 2)))
        assert decode_wkb(data, CodecConfig(max_depth=3)) is not None
        with pytest.raises(NestingTooDeepError):
            decode_wkb(data, CodecConfig(max_depth=2))


class TestMalformedWkb:
    def test_invalid_hex_digit(self):
        with pytest.raises(InvalidHexDigitError):
            decode_wkb_hex("0G")

    def test_odd_length(self):
        with pytest.raises(OddLengthHexError):
            decode_wkb_hex(POINT_4326_HEX[:-1])

    def test_truncated(self):
        with pytest.raises(TruncatedWkbError):
            decode_wkb_hex(POINT_4326_HEX[:-4])

    def test_truncated_header(self):
        with pytest.raises(TruncatedWkbError):
            decode_wkb(b"\x01\x01\x00")

    def test_truncated_is_malformed(self):
        with pytest.raises(MalformedWkbError):
            decode_wkb(point(1.0, 2.0)[:-1])

    def test_huge_count_fails_fast(self):
        data = header(2) + struct.pack("<I", 0xFFFFFFFF)
        with pytest.raises(TruncatedWkbError):
            decode_wkb(data)

    def test_unknown_type(self):
        with pytest.raises(UnknownWkbTypeError):
            decode_wkb(header(99) + b"\x00" * 16)

    def test_invalid_byte_order(self):
        with pytest.raises(MalformedWkbError, match="byte order"):
            decode_wkb(b"\x02" + point(1.0, 2.0)[1:])

    def test_trailing_bytes_warn(self, caplog):
        with caplog.at_level(logging.WARNING, logger="postgis_geometry.decoder"):
            geom = decode_wkb(point(1.0, 2.0) + b"\x00\x00")
        assert geom.coordinates == (1.0, 2.0)
        assert "trailing" in caplog.text
