"""
WKB and EWKB decoder.

This module decodes the Well-Known Binary encoding PostGIS hands back for
geometry and geography columns, usually as hexadecimal text. Both the ISO
type codes and the PostGIS EWKB flag bits are understood.

Layout:
    - Byte 0: Byte order (0 = big-endian, 1 = little-endian)
    - Bytes 1-4: Geometry type (uint32 in that byte order)
        * code % 1000: base kind (1=Point ... 7=GeometryCollection,
          8-17 curve and surface kinds)
        * code // 1000: ISO dimensionality (1=Z, 2=M, 3=ZM)
        * 0x80000000 / 0x40000000: EWKB Z / M flags
        * 0x20000000: EWKB SRID flag, followed by a uint32 SRID
    - Body:
        * Point: one position of doubles (all NaN means POINT EMPTY)
        * LineString, CircularString: uint32 count, then positions
        * Polygon, Triangle: uint32 ring count, each ring a uint32 count
          and positions
        * Multi kinds, collections and curve containers: uint32 count, then
          that many complete WKB geometries, each with its own header
"""

import logging
import math
import re
import struct

from .config import DEFAULT_CONFIG, CodecConfig
from .exceptions import (
    InvalidHexDigitError,
    MalformedWkbError,
    NestingTooDeepError,
    OddLengthHexError,
    TruncatedWkbError,
    UnknownWkbTypeError,
)
from .geometry import Dimensionality, Geometry, GeometryKind, Position

logger = logging.getLogger(__name__)

# EWKB flag bits
WKB_Z_FLAG = 0x80000000
WKB_M_FLAG = 0x40000000
WKB_SRID_FLAG = 0x20000000
WKB_TYPE_MASK = 0x0FFFFFFF

BIG_ENDIAN = 0
LITTLE_ENDIAN = 1

_NON_HEX_RE = re.compile(r"[^0-9A-Fa-f]")

_KINDS_BY_CODE = {kind.value: kind for kind in GeometryKind}

# Bytes of context included in error fragments
_FRAGMENT_BYTES = 16


def hex_to_bytes(text: str) -> bytes:
    """
    Convert hexadecimal text to bytes.

    Raises:
        OddLengthHexError: If the text has an odd number of characters
        InvalidHexDigitError: If the text contains a non-hex character
    """
    if len(text) % 2:
        raise OddLengthHexError(
            f"Hex string has odd length {len(text)}", fragment=text[-32:]
        )
    match = _NON_HEX_RE.search(text)
    if match:
        raise InvalidHexDigitError(
            f"Invalid hex digit {match.group()!r} at position {match.start()}",
            fragment=text[match.start() : match.start() + 32],
        )
    return bytes.fromhex(text)


class _ByteReader:
    """Cursor over a WKB buffer; the byte order changes per geometry header"""

    def __init__(self, data: bytes):
        self.data = data
        self.offset = 0
        self.endian = "<"

    @property
    def remaining(self) -> int:
        return len(self.data) - self.offset

    def fragment(self, start: int | None = None) -> str:
        start = self.offset if start is None else start
        return self.data[start : start + _FRAGMENT_BYTES].hex()

    def require(self, size: int, what: str) -> None:
        if self.remaining < size:
            raise TruncatedWkbError(
                f"WKB truncated reading {what}: need {size} bytes at offset "
                f"{self.offset}, {self.remaining} left",
                fragment=self.fragment(),
            )

    def take(self, size: int, what: str) -> bytes:
        self.require(size, what)
        chunk = self.data[self.offset : self.offset + size]
        self.offset += size
        return chunk

    def read_byte(self, what: str) -> int:
        return self.take(1, what)[0]

    def read_uint32(self, what: str) -> int:
        return struct.unpack(f"{self.endian}I", self.take(4, what))[0]

    def read_position(self, ordinates: int, empty_ok: bool = False) -> Position:
        start = self.offset
        chunk = self.take(8 * ordinates, "position")
        position = struct.unpack(f"{self.endian}{ordinates}d", chunk)
        if all(math.isfinite(v) for v in position):
            return position
        # All NaN is how PostGIS writes POINT EMPTY
        if empty_ok and all(math.isnan(v) for v in position):
            return position
        raise MalformedWkbError(
            f"Non-finite ordinate in position at offset {start}",
            fragment=self.fragment(start),
        )


class WKBDecoder:
    """
    Decoder for WKB and PostGIS EWKB.

    Example:
        >>> decoder = WKBDecoder()
        >>> hex_wkb = "0101000020E61000000000000000003E400000000000002440"
        >>> geom = decoder.decode_hex(hex_wkb)
        >>> print(geom.wkt)
        SRID=4326;POINT(30 10)
    """

    def __init__(self, config: CodecConfig | None = None):
        """
        Initialize the decoder.

        Args:
            config: Codec limits. If None, uses CodecConfig() defaults.
        """
        self.config = config or DEFAULT_CONFIG

    def parse_type_code(self, code: int) -> tuple[GeometryKind, Dimensionality, bool]:
        """
        Split a WKB type code into kind, dimensionality and the SRID flag.

        Args:
            code: The uint32 type code

        Returns:
            Tuple of (kind, dimensionality, has_srid)

        Raises:
            UnknownWkbTypeError: If the code matches no known kind
        """
        iso, kind_code = divmod(code & WKB_TYPE_MASK, 1000)
        kind = _KINDS_BY_CODE.get(kind_code) if iso <= 3 else None
        if kind is None:
            raise UnknownWkbTypeError(
                f"Unknown WKB geometry type {code} (0x{code:08x})",
                fragment=f"{code:08x}",
            )

        has_z = bool(code & WKB_Z_FLAG) or iso in (1, 3)
        has_m = bool(code & WKB_M_FLAG) or iso in (2, 3)
        has_srid = bool(code & WKB_SRID_FLAG)
        return kind, Dimensionality.from_flags(has_z, has_m), has_srid

    def decode(self, data: bytes | bytearray | memoryview | None) -> Geometry | None:
        """
        Decode WKB bytes to a geometry.

        Args:
            data: Raw WKB or EWKB bytes; None or empty means no value

        Returns:
            The decoded geometry, or None for absent input

        Raises:
            TruncatedWkbError: If the data ends early
            UnknownWkbTypeError: If a type code is not recognised
            MalformedWkbError: If the structure is otherwise invalid
            NestingTooDeepError: If collections nest deeper than allowed
        """
        if data is None or len(data) == 0:
            return None

        reader = _ByteReader(bytes(data))
        geometry = self._read_geometry(reader, depth=1)

        if reader.remaining:
            logger.warning(
                "Ignoring %d trailing bytes after WKB geometry", reader.remaining
            )
        return geometry

    def decode_hex(self, text: str | None) -> Geometry | None:
        """
        Decode hexadecimal WKB text to a geometry.

        Raises:
            OddLengthHexError: If the text has an odd number of characters
            InvalidHexDigitError: If the text contains a non-hex character
            (plus everything decode() raises)
        """
        if text is None or text == "":
            return None
        return self.decode(hex_to_bytes(text))

    def _read_geometry(self, reader: _ByteReader, depth: int) -> Geometry:
        if depth > self.config.max_depth:
            raise NestingTooDeepError(
                f"Geometry nesting exceeds {self.config.max_depth} levels",
                fragment=reader.fragment(),
            )

        start = reader.offset
        order = reader.read_byte("byte order")
        if order not in (BIG_ENDIAN, LITTLE_ENDIAN):
            raise MalformedWkbError(
                f"Invalid WKB byte order flag {order} at offset {start}",
                fragment=reader.fragment(start),
            )

        outer_endian = reader.endian
        reader.endian = "<" if order == LITTLE_ENDIAN else ">"

        code = reader.read_uint32("geometry type")
        kind, dimensionality, has_srid = self.parse_type_code(code)

        srid = None
        if has_srid:
            # SRID 0 is PostGIS's "unknown"
            srid = reader.read_uint32("SRID") or None

        geometry = self._read_body(reader, kind, dimensionality, depth)
        geometry.srid = srid

        reader.endian = outer_endian
        return geometry

    def _read_body(
        self,
        reader: _ByteReader,
        kind: GeometryKind,
        dimensionality: Dimensionality,
        depth: int,
    ) -> Geometry:
        ordinates = dimensionality.ordinates

        if kind is GeometryKind.POINT:
            position = reader.read_position(ordinates, empty_ok=True)
            if all(math.isnan(v) for v in position):
                return Geometry(kind, dimensionality=dimensionality)
            return Geometry(kind, coordinates=position, dimensionality=dimensionality)

        if kind.member_kind is not None:
            parts = self._read_parts(reader, kind, dimensionality, depth)
            return Geometry(kind, coordinates=parts, dimensionality=dimensionality)

        if kind.has_children:
            count = reader.read_uint32(f"{kind.keyword} member count")
            # Every member needs at least a byte order and a type code
            reader.require(5 * count, f"{kind.keyword} members")
            members = [self._read_geometry(reader, depth + 1) for _ in range(count)]
            return Geometry(
                kind, geometries=members or None, dimensionality=dimensionality
            )

        if kind.depth == 2:
            coordinates = self._read_positions(reader, ordinates, kind)
        else:
            coordinates = self._read_rings(reader, ordinates, kind)
        return Geometry(kind, coordinates=coordinates, dimensionality=dimensionality)

    def _read_positions(
        self, reader: _ByteReader, ordinates: int, kind: GeometryKind
    ) -> list[Position] | None:
        count = reader.read_uint32(f"{kind.keyword} point count")
        reader.require(8 * ordinates * count, f"{kind.keyword} positions")
        if count == 0:
            return None
        return [reader.read_position(ordinates) for _ in range(count)]

    def _read_rings(
        self, reader: _ByteReader, ordinates: int, kind: GeometryKind
    ) -> list[list[Position]] | None:
        count = reader.read_uint32(f"{kind.keyword} ring count")
        reader.require(4 * count, f"{kind.keyword} rings")
        if count == 0:
            return None

        rings: list[list[Position]] = []
        for index in range(count):
            start = reader.offset
            ring = self._read_positions(reader, ordinates, kind)
            if ring is None:
                raise MalformedWkbError(
                    f"{kind.keyword} ring {index} is empty",
                    fragment=reader.fragment(start),
                )
            rings.append(ring)
        return rings

    def _read_parts(
        self,
        reader: _ByteReader,
        kind: GeometryKind,
        dimensionality: Dimensionality,
        depth: int,
    ) -> list | None:
        """Read the parts of a multi-part kind, keeping only their coordinates"""
        count = reader.read_uint32(f"{kind.keyword} part count")
        reader.require(5 * count, f"{kind.keyword} parts")
        if count == 0:
            return None

        parts = []
        for index in range(count):
            start = reader.offset
            part = self._read_geometry(reader, depth + 1)
            if part.kind is not kind.member_kind:
                expected = kind.member_kind.keyword
                problem = f"is a {part.kind.keyword}, expected {expected}"
            elif part.is_empty:
                problem = "is empty"
            elif part.dimensionality is not dimensionality:
                problem = (
                    f"has dimensionality {part.dimensionality.name}, "
                    f"expected {dimensionality.name}"
                )
            else:
                parts.append(part.coordinates)
                continue
            raise MalformedWkbError(
                f"{kind.keyword} part {index} {problem}",
                fragment=reader.fragment(start),
            )
        return parts


def decode_wkb(
    data: bytes | bytearray | memoryview | None, config: CodecConfig | None = None
) -> Geometry | None:
    """
    Convenience function to decode WKB bytes.

    Args:
        data: Raw WKB or EWKB bytes
        config: Codec limits

    Returns:
        Decoded geometry object with .wkt property, or None for empty input
    """
    return WKBDecoder(config).decode(data)


def decode_wkb_hex(
    text: str | None, config: CodecConfig | None = None
) -> Geometry | None:
    """
    Convenience function to decode hexadecimal WKB text.

    Args:
        text: Hex-encoded WKB or EWKB, as PostGIS returns it
        config: Codec limits

    Returns:
        Decoded geometry object with .wkt property, or None for empty input

    Example:
        >>> geom = decode_wkb_hex("0101000020E61000000000000000003E400000000000002440")
        >>> print(geom.wkt)
        SRID=4326;POINT(30 10)
    """
    return WKBDecoder(config).decode_hex(text)
