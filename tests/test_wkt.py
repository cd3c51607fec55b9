"""Tests for WKT/EWKT parsing and serialization."""

import pytest

from postgis_geometry import (
    CodecConfig,
    Dimensionality,
    Geometry,
    GeometryKind,
    MalformedWktError,
    NestingTooDeepError,
    parse_wkt,
    to_wkt,
)

# Already in the serializer's canonical form, so each should round-trip exactly
CANONICAL_WKT = [
    "POINT(30 10)",
    "SRID=4326;POINT(30 10)",
    "POINT(1.5 -2.25)",
    "POINTZ(1 2 3)",
    "POINTM(1 2 3)",
    "POINTZM(1 2 3 4)",
    "LINESTRING(30 10,10 30,40 40)",
    "POLYGON((35 10,45 45,15 40,10 20,35 10),(20 30,35 35,30 20,20 30))",
    "MULTIPOINT(10 40,40 30,20 20)",
    "MULTILINESTRING((10 10,20 20,10 40),(40 40,30 30,40 20,30 10))",
    "MULTIPOLYGON(((30 20,45 40,10 40,30 20)),((15 5,40 10,10 20,5 10,15 5)))",
    "GEOMETRYCOLLECTION(POINT(4 6),LINESTRING(4 6,7 10))",
    "GEOMETRYCOLLECTION(POINT EMPTY,POINT(1 2))",
    "CIRCULARSTRING(0 0,1 1,1 0)",
    "COMPOUNDCURVE(CIRCULARSTRING(0 0,1 1,1 0),(1 0,0 1))",
    "CURVEPOLYGON(CIRCULARSTRING(0 0,4 0,4 4,0 4,0 0),(1 1,3 3,3 1,1 1))",
    "MULTICURVE((0 0,5 5),CIRCULARSTRING(4 0,4 4,8 4))",
    "MULTISURFACE(CURVEPOLYGON(CIRCULARSTRING(0 0,4 0,4 4,0 4,0 0)),"
    "((10 10,14 12,11 10,10 10)))",
    "POLYHEDRALSURFACEZ(((0 0 0,0 0 1,0 1 1,0 0 0)))",
    "TIN(((0 0,0 1,1 0,0 0)),((0 0,1 0,1 1,0 0)))",
    "TRIANGLE((0 0,0 1,1 0,0 0))",
    "MULTIPOLYGON EMPTY",
    "POINTZ EMPTY",
    "GEOMETRYCOLLECTION EMPTY",
]


class TestParsePoint:
    def test_point(self):
        geom = parse_wkt("POINT(30 10)")
        assert geom.kind is GeometryKind.POINT
        assert geom.coordinates == (30.0, 10.0)
        assert geom.dimensionality is Dimensionality.XY
        assert geom.srid is None

    def test_ewkt_srid(self):
        geom = parse_wkt("SRID=4326;POINT(30 10)")
        assert geom.srid == 4326

    def test_srid_zero_is_unspecified(self):
        assert parse_wkt("SRID=0;POINT(30 10)").srid is None

    def test_case_and_whitespace(self):
        geom = parse_wkt("  srid=3857; point ( -1.5e2   2.0 )  ")
        assert geom.srid == 3857
        assert geom.coordinates == (-150.0, 2.0)

    @pytest.mark.parametrize(
        "text", ["POINT Z (1 2 3)", "POINTZ(1 2 3)", "POINT Z(1 2 3)", "point z(1 2 3)"]
    )
    def test_suffix_forms_are_identical(self, text):
        expected = Geometry(
            GeometryKind.POINT,
            coordinates=(1.0, 2.0, 3.0),
            dimensionality=Dimensionality.XYZ,
        )
        assert parse_wkt(text) == expected

    def test_m_suffix(self):
        geom = parse_wkt("POINT M (1 2 3)")
        assert geom.dimensionality is Dimensionality.XYM

    def test_inferred_dimensionality(self):
        assert parse_wkt("POINT(1 2 3)").dimensionality is Dimensionality.XYZ
        assert parse_wkt("POINT(1 2 3 4)").dimensionality is Dimensionality.XYZM

    def test_empty(self):
        geom = parse_wkt("POINT EMPTY")
        assert geom.is_empty
        assert geom.kind is GeometryKind.POINT

    def test_absent_input(self):
        assert parse_wkt(None) is None
        assert parse_wkt("") is None
        assert parse_wkt("   ") is None


class TestParseCollections:
    def test_polygon_rings(self):
        geom = parse_wkt("POLYGON((0 0,10 0,10 10,0 0),(1 1,2 1,2 2,1 1))")
        assert len(geom.coordinates) == 2
        assert geom.coordinates[1][0] == (1.0, 1.0)

    def test_multipoint_both_forms(self):
        bare = parse_wkt("MULTIPOINT(10 40,40 30)")
        wrapped = parse_wkt("MULTIPOINT((10 40),(40 30))")
        assert bare == wrapped
        assert bare.coordinates == [(10.0, 40.0), (40.0, 30.0)]

    def test_multipolygon(self):
        geom = parse_wkt("MULTIPOLYGON(((0 0,1 0,1 1,0 0)),((5 5,6 5,6 6,5 5)))")
        assert len(geom.coordinates) == 2
        assert geom.coordinates[1][0][2] == (6.0, 6.0)

    def test_geometry_collection(self):
        geom = parse_wkt("GEOMETRYCOLLECTION(POINT(4 6),LINESTRING(4 6,7 10))")
        assert geom.coordinates is None
        assert [g.kind for g in geom.geometries] == [
            GeometryKind.POINT,
            GeometryKind.LINESTRING,
        ]

    def test_collection_members_keep_own_dimensionality(self):
        geom = parse_wkt("GEOMETRYCOLLECTION(POINT(1 2 3),POINT M(1 2 3))")
        assert geom.dimensionality is Dimensionality.XYZ
        assert geom.geometries[1].dimensionality is Dimensionality.XYM

    def test_compound_curve_members(self):
        geom = parse_wkt("COMPOUNDCURVE(CIRCULARSTRING(0 0,1 1,1 0),(1 0,0 1))")
        assert [g.kind for g in geom.geometries] == [
            GeometryKind.CIRCULARSTRING,
            GeometryKind.LINESTRING,
        ]

    def test_curve_container_shares_dimensionality(self):
        geom = parse_wkt(
            "COMPOUNDCURVE Z (CIRCULARSTRING(0 0 1,1 1 1,1 0 1),(1 0 1,0 1 1))"
        )
        assert geom.dimensionality is Dimensionality.XYZ
        assert all(g.dimensionality is Dimensionality.XYZ for g in geom.geometries)

    def test_multisurface_bare_member_is_polygon(self):
        geom = parse_wkt("MULTISURFACE(((0 0,1 0,1 1,0 0)))")
        assert geom.geometries[0].kind is GeometryKind.POLYGON

    def test_max_depth(self):
        text = "GEOMETRYCOLLECTION(GEOMETRYCOLLECTION(POINT(1 2)))"
        assert parse_wkt(text, CodecConfig(max_depth=3)) is not None
        with pytest.raises(NestingTooDeepError):
            parse_wkt(text, CodecConfig(max_depth=2))


class TestMalformedWkt:
    @pytest.mark.parametrize(
        "text",
        [
            "POINT(1 2",
            "POINT(1)",
            "POINT(1 2,3 4)",
            "POINT(1 2 3 4 5)",
            "POINTZ(1 2)",
            "LINESTRING(0 0,1 1 1)",
            "FOO(1 2)",
            "POINT(1 2) extra",
            "POINT(a b)",
            "POLYGON(0 0,1 1,1 0,0 0)",
            "COMPOUNDCURVE(POLYGON((0 0,1 1,1 0,0 0)))",
            "GEOMETRYCOLLECTION()",
            "SRID=4326;",
            "POINT(1 1e999)",
        ],
    )
    def test_rejected(self, text):
        with pytest.raises(MalformedWktError):
            parse_wkt(text)

    def test_error_is_value_error_with_fragment(self):
        with pytest.raises(ValueError) as exc_info:
            parse_wkt("LINESTRING(0 0,1 1 1)")
        assert exc_info.value.fragment.startswith("1 1 1")


class TestToWkt:
    def test_point(self):
        pt = Geometry(GeometryKind.POINT, coordinates=(30.0, 10.0), srid=4326)
        assert to_wkt(pt) == "SRID=4326;POINT(30 10)"

    def test_number_formatting(self):
        pt = Geometry(GeometryKind.POINT, coordinates=(-122.0, 0.1))
        assert to_wkt(pt) == "POINT(-122 0.1)"

    def test_empty_keeps_suffix(self):
        geom = Geometry(GeometryKind.LINESTRING, dimensionality=Dimensionality.XYM)
        assert to_wkt(geom) == "LINESTRINGM EMPTY"

    def test_none(self):
        assert to_wkt(None) is None

    def test_multipolygon_empty_symmetry(self):
        assert to_wkt(parse_wkt("MULTIPOLYGON EMPTY")) == "MULTIPOLYGON EMPTY"

    @pytest.mark.parametrize("text", CANONICAL_WKT)
    def test_round_trip(self, text):
        geom = parse_wkt(text)
        assert to_wkt(geom) == text
        assert parse_wkt(to_wkt(geom)) == geom

    def test_normalises_spacing(self):
        geom = parse_wkt("MULTIPOINT Z ((1 2 3), (4 5 6))")
        assert to_wkt(geom) == "MULTIPOINTZ(1 2 3,4 5 6)"
