"""
WKT and EWKT parsing and serialization.

Parsing tokenises the text with a single regular expression and reads the
token stream with a small recursive-descent reader. Accepted input:

    [SRID=<n>;]KEYWORD[ ][Z|M|ZM] ( EMPTY | (coordinates) )

Serialization writes the compact PostGIS-style form, for example
``SRID=4326;POINT(30 10)``, ``POINTZ(1 2 3)`` or ``MULTIPOLYGON EMPTY``.
"""

import math
import re
from collections.abc import Iterator
from typing import Any, NamedTuple, NoReturn

from .config import DEFAULT_CONFIG, CodecConfig
from .exceptions import MalformedWktError, NestingTooDeepError
from .geometry import (
    CONTAINER_MEMBERS,
    Dimensionality,
    Geometry,
    GeometryKind,
    Position,
)

_SRID_RE = re.compile(r"\s*SRID=(\d+);", re.IGNORECASE)

_TOKEN_RE = re.compile(
    r"""
    \s*(?:
        (?P<number>[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)
      | (?P<word>[A-Za-z]+)
      | (?P<punct>[(),])
      | (?P<other>\S)
    )
    """,
    re.VERBOSE,
)

_SUFFIXES = ("ZM", "Z", "M")

# Characters of context included in error fragments
_FRAGMENT_LENGTH = 30


class _Token(NamedTuple):
    kind: str
    value: str
    pos: int


def _tokenize(text: str, start: int) -> Iterator[_Token]:
    for match in _TOKEN_RE.finditer(text, start):
        kind = match.lastgroup
        assert kind is not None
        yield _Token(kind, match.group(kind), match.start(kind))


class _Ordinates:
    """Ordinate count shared by every position of one geometry"""

    def __init__(self, dimensionality: Dimensionality | None = None):
        self.dimensionality = dimensionality


class _Reader:
    """Recursive-descent reader over the tokens of one WKT string."""

    def __init__(self, text: str, config: CodecConfig):
        self.text = text
        self.config = config
        self.tokens: list[_Token] = []
        self.index = 0

    def parse(self) -> Geometry:
        srid: int | None = None
        start = 0
        match = _SRID_RE.match(self.text)
        if match:
            srid = int(match.group(1)) or None
            start = match.end()

        self.tokens = list(_tokenize(self.text, start))
        geometry = self.read_geometry(None, depth=1)

        extra = self.peek()
        if extra is not None:
            self.fail("Unexpected trailing content", extra)

        geometry.srid = srid
        return geometry

    # -- token helpers -----------------------------------------------------

    def fail(self, message: str, token: _Token | None = None) -> NoReturn:
        pos = token.pos if token is not None else len(self.text)
        fragment = self.text[pos : pos + _FRAGMENT_LENGTH]
        if token is None:
            message = f"{message} at end of input"
        else:
            message = f"{message} at position {pos}: {fragment!r}"
        raise MalformedWktError(message, fragment=fragment or self.text)

    def peek(self) -> _Token | None:
        if self.index < len(self.tokens):
            return self.tokens[self.index]
        return None

    def next(self) -> _Token:
        token = self.peek()
        if token is None:
            self.fail("Unexpected end of WKT")
        self.index += 1
        return token

    def accept(self, punct: str) -> bool:
        token = self.peek()
        if token is not None and token.kind == "punct" and token.value == punct:
            self.index += 1
            return True
        return False

    def expect(self, punct: str) -> None:
        token = self.peek()
        if not self.accept(punct):
            self.fail(f"Expected {punct!r}", token)

    def accept_word(self, word: str) -> bool:
        token = self.peek()
        if token is not None and token.kind == "word" and token.value.upper() == word:
            self.index += 1
            return True
        return False

    # -- grammar -----------------------------------------------------------

    def read_keyword(self) -> tuple[GeometryKind, Dimensionality | None]:
        """Read a geometry keyword and its optional dimensionality suffix"""
        token = self.next()
        if token.kind != "word":
            self.fail("Expected a geometry keyword", token)

        word = token.value.upper()
        kind = GeometryKind.from_keyword(word)
        suffix: str | None = None
        if kind is None:
            for candidate in _SUFFIXES:
                if word.endswith(candidate):
                    kind = GeometryKind.from_keyword(word[: -len(candidate)])
                    if kind is not None:
                        suffix = candidate
                        break
        if kind is None:
            self.fail("Unknown geometry keyword", token)

        if suffix is None:
            following = self.peek()
            if (
                following is not None
                and following.kind == "word"
                and following.value.upper() in _SUFFIXES
            ):
                suffix = following.value.upper()
                self.index += 1

        if suffix is None:
            return kind, None
        return kind, Dimensionality.from_suffix(suffix)

    def read_geometry(self, inherited: _Ordinates | None, depth: int) -> Geometry:
        kind, explicit = self.read_keyword()
        return self.read_tagged(kind, explicit, inherited, depth)

    def read_tagged(
        self,
        kind: GeometryKind,
        explicit: Dimensionality | None,
        inherited: _Ordinates | None,
        depth: int,
    ) -> Geometry:
        """Read the body that follows a keyword"""
        if depth > self.config.max_depth:
            raise NestingTooDeepError(
                f"Geometry nesting exceeds {self.config.max_depth} levels",
                fragment=self.text[:_FRAGMENT_LENGTH],
            )

        ordinates = self.ordinates_for(explicit, inherited)

        if self.accept_word("EMPTY"):
            return Geometry(
                kind, dimensionality=ordinates.dimensionality or Dimensionality.XY
            )

        if kind.has_children:
            members = self.read_members(kind, ordinates, depth)
            if kind is GeometryKind.GEOMETRYCOLLECTION:
                dimensionality = ordinates.dimensionality or members[0].dimensionality
            else:
                dimensionality = ordinates.dimensionality or Dimensionality.XY
                for member in members:
                    _settle(member, dimensionality)
            return Geometry(kind, geometries=members, dimensionality=dimensionality)

        coordinates = self.read_coordinates(kind, ordinates)
        assert ordinates.dimensionality is not None
        return Geometry(
            kind, coordinates=coordinates, dimensionality=ordinates.dimensionality
        )

    def ordinates_for(
        self, explicit: Dimensionality | None, inherited: _Ordinates | None
    ) -> _Ordinates:
        if inherited is None:
            return _Ordinates(explicit)
        if explicit is not None:
            if inherited.dimensionality is None:
                inherited.dimensionality = explicit
            elif inherited.dimensionality is not explicit:
                self.fail(
                    f"Member dimensionality {explicit.name} conflicts with "
                    f"{inherited.dimensionality.name}",
                    self.tokens[self.index - 1],
                )
        return inherited

    def read_coordinates(self, kind: GeometryKind, ordinates: _Ordinates) -> Any:
        if kind is GeometryKind.POINT:
            self.expect("(")
            position = self.read_position(ordinates)
            token = self.peek()
            if token is not None and token.value == ",":
                self.fail("POINT takes exactly one position", token)
            self.expect(")")
            return position
        if kind is GeometryKind.MULTIPOINT:
            return self.read_multipoint(ordinates)
        return self.read_list(kind.depth - 1, ordinates)

    def read_list(self, item_depth: int, ordinates: _Ordinates) -> list[Any]:
        """Read ``(item, item, ...)``; items are positions at depth 1"""
        self.expect("(")
        items: list[Any] = []
        while True:
            if item_depth == 1:
                items.append(self.read_position(ordinates))
            else:
                items.append(self.read_list(item_depth - 1, ordinates))
            if not self.accept(","):
                break
        self.expect(")")
        return items

    def read_multipoint(self, ordinates: _Ordinates) -> list[Position]:
        """Read MULTIPOINT members, with or without parentheses around each"""
        self.expect("(")
        points: list[Position] = []
        while True:
            if self.accept("("):
                points.append(self.read_position(ordinates))
                self.expect(")")
            else:
                points.append(self.read_position(ordinates))
            if not self.accept(","):
                break
        self.expect(")")
        return points

    def read_position(self, ordinates: _Ordinates) -> Position:
        start = self.peek()
        values: list[float] = []
        while True:
            token = self.peek()
            if token is None or token.kind != "number":
                break
            value = float(token.value)
            if not math.isfinite(value):
                self.fail("Ordinate is out of range", token)
            values.append(value)
            self.index += 1

        if len(values) < 2:
            self.fail("Expected a position of at least two numbers", start)

        if ordinates.dimensionality is None:
            inferred = Dimensionality.from_ordinates(len(values))
            if inferred is None:
                self.fail(f"Position has {len(values)} ordinates", start)
            ordinates.dimensionality = inferred
        else:
            expected = ordinates.dimensionality.ordinates
            if len(values) != expected:
                self.fail(
                    f"Position has {len(values)} ordinates, expected {expected}",
                    start,
                )
        return tuple(values)

    def read_members(
        self, kind: GeometryKind, ordinates: _Ordinates, depth: int
    ) -> list[Geometry]:
        """Read the child geometries of a collection or curve container"""
        implicit, allowed = CONTAINER_MEMBERS[kind]
        # Collection members carry their own dimensionality
        shared = None if kind is GeometryKind.GEOMETRYCOLLECTION else ordinates

        self.expect("(")
        members: list[Geometry] = []
        while True:
            token = self.peek()
            if (
                implicit is not None
                and token is not None
                and token.kind == "punct"
                and token.value == "("
            ):
                assert shared is not None
                coordinates = self.read_list(implicit.depth - 1, shared)
                members.append(
                    Geometry(
                        implicit,
                        coordinates=coordinates,
                        dimensionality=shared.dimensionality or Dimensionality.XY,
                    )
                )
            else:
                member_kind, explicit = self.read_keyword()
                if allowed is not None and member_kind not in allowed:
                    self.fail(
                        f"{member_kind.keyword} is not allowed in {kind.keyword}",
                        token,
                    )
                members.append(
                    self.read_tagged(member_kind, explicit, shared, depth + 1)
                )
            if not self.accept(","):
                break
        self.expect(")")
        return members


def _settle(geometry: Geometry, dimensionality: Dimensionality) -> None:
    """Apply a container's final dimensionality to members read before it was known"""
    geometry.dimensionality = dimensionality
    for child in geometry.geometries or []:
        _settle(child, dimensionality)


def parse_wkt(text: str | None, config: CodecConfig | None = None) -> Geometry | None:
    """
    Parse WKT or EWKT text into a Geometry.

    Args:
        text: WKT/EWKT text; None or blank text means no value
        config: Codec limits (defaults to CodecConfig())

    Returns:
        The parsed geometry, or None for absent input

    Raises:
        MalformedWktError: If the text is not well-formed WKT
        NestingTooDeepError: If collections nest deeper than config.max_depth

    Example:
        >>> geom = parse_wkt("SRID=4326;POINT Z (1 2 3)")
        >>> geom.kind.keyword, geom.dimensionality.suffix, geom.srid
        ('POINT', 'Z', 4326)
    """
    if text is None or not text.strip():
        return None
    return _Reader(text, config or DEFAULT_CONFIG).parse()


def _format_number(value: float) -> str:
    value = float(value)
    if value.is_integer() and abs(value) < 1e16:
        return str(int(value))
    return repr(value)


def _format_position(position: Position) -> str:
    return " ".join(_format_number(v) for v in position)


def _format_nested(coords: Any, depth: int) -> str:
    if depth == 1:
        return _format_position(coords)
    return "(" + ",".join(_format_nested(c, depth - 1) for c in coords) + ")"


def _format_body(geometry: Geometry) -> str:
    kind = geometry.kind
    if geometry.geometries is not None:
        if kind is GeometryKind.GEOMETRYCOLLECTION:
            members = [_format_tagged(g) for g in geometry.geometries]
        else:
            implicit = CONTAINER_MEMBERS[kind][0]
            members = [
                _format_body(g)
                if g.kind is implicit and not g.is_empty
                else _format_tagged(g, with_suffix=False)
                for g in geometry.geometries
            ]
        return "(" + ",".join(members) + ")"
    if kind is GeometryKind.POINT:
        return "(" + _format_position(geometry.coordinates) + ")"
    return _format_nested(geometry.coordinates, kind.depth)


def _format_tagged(geometry: Geometry, with_suffix: bool = True) -> str:
    head = geometry.kind.keyword
    if with_suffix:
        head += geometry.dimensionality.suffix
    if geometry.is_empty:
        return f"{head} EMPTY"
    return head + _format_body(geometry)


def to_wkt(geometry: Geometry | None) -> str | None:
    """
    Convert a geometry to EWKT text.

    The ``SRID=<n>;`` prefix is written only when the geometry has an SRID,
    so geometries without one serialize as plain WKT.

    Args:
        geometry: Geometry object, or None

    Returns:
        EWKT string, or None when geometry is None

    Example:
        >>> to_wkt(Geometry(GeometryKind.POINT, coordinates=(30.0, 10.0), srid=4326))
        'SRID=4326;POINT(30 10)'
    """
    if geometry is None:
        return None
    text = _format_tagged(geometry)
    if geometry.srid:
        return f"SRID={geometry.srid};{text}"
    return text
