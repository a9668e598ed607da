"""Boundary segments and the resolver that walks them into one coordinate sequence.

A boundary is an ordered list of ``LineSegment``, ``ArcSegment`` and
``CircleSegment`` values. Every segment continues from the last point resolved
by the one before it; arcs use that point as their start. All state for one
boundary lives in a ``ConversionContext`` that the caller creates and owns, so
independent boundaries can be resolved in parallel.
"""

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union

from _errors import (
    ArcMissingPrecedingPointError,
    EmptyLineSegmentError,
    InvalidArcParameterError,
    UnsupportedBoundaryTypeError,
)
from _geo import (
    DEFAULT_GEOMETRY_DETAIL,
    Coordinate,
    parse_latlon_pair,
    radius_km_from_text,
    tessellate_arc,
    tessellate_circle,
)

ARC_DIRECTIONS = ("cw", "ccw")


@dataclass(frozen=True)
class LineSegment:
    points: Tuple[str, ...]


@dataclass(frozen=True)
class ArcSegment:
    direction: str  # 'cw' | 'ccw'
    radius: Union[str, float]  # nautical miles, e.g. '10 NM'
    centre: str
    to: str


@dataclass(frozen=True)
class CircleSegment:
    radius: Union[str, float]
    centre: str


BoundarySegment = Union[LineSegment, ArcSegment, CircleSegment]


@dataclass
class ConversionContext:
    ident: Optional[str] = None
    seqno: Optional[Any] = None
    coordinates: List[Coordinate] = field(default_factory=list)

    @property
    def last_point(self) -> Optional[Coordinate]:
        return self.coordinates[-1] if self.coordinates else None


def _require(definition: Mapping[str, Any], name: str) -> Any:
    value = definition.get(name)
    if value is None:
        raise InvalidArcParameterError(name, value)
    return value


def segment_from_dict(definition: Mapping[str, Any]) -> BoundarySegment:
    """
    Decode one boundary entry of the form ``{"line": [...]}``,
    ``{"arc": {"dir", "radius", "centre", "to"}}`` or
    ``{"circle": {"radius", "centre"}}``.
    """
    if not isinstance(definition, Mapping) or len(definition) != 1:
        raise UnsupportedBoundaryTypeError(definition)
    ((kind, body),) = definition.items()
    if kind == "line":
        if isinstance(body, str) or not isinstance(body, Sequence):
            raise EmptyLineSegmentError(f"Invalid line boundary definition '{body}'")
        return LineSegment(points=tuple(body))
    if kind == "arc":
        if not isinstance(body, Mapping):
            raise InvalidArcParameterError("arc", body)
        return ArcSegment(
            direction=_require(body, "dir"),
            radius=_require(body, "radius"),
            centre=_require(body, "centre"),
            to=_require(body, "to"),
        )
    if kind == "circle":
        if not isinstance(body, Mapping):
            raise InvalidArcParameterError("circle", body)
        return CircleSegment(
            radius=_require(body, "radius"), centre=_require(body, "centre")
        )
    raise UnsupportedBoundaryTypeError(kind)


def _resolve_line(segment: LineSegment) -> List[Coordinate]:
    if not segment.points:
        raise EmptyLineSegmentError("Line boundary definition has no points")
    return [parse_latlon_pair(token) for token in segment.points]


def _resolve_arc(
    segment: ArcSegment, last_point: Optional[Coordinate], steps: int
) -> List[Coordinate]:
    if last_point is None:
        raise ArcMissingPrecedingPointError(
            "Invalid arc boundary definition, previous coordinate pair is missing"
        )
    if segment.direction not in ARC_DIRECTIONS:
        raise InvalidArcParameterError("direction", segment.direction)
    radius_km = radius_km_from_text(segment.radius)
    centre = parse_latlon_pair(segment.centre)
    to = parse_latlon_pair(segment.to)
    coords = tessellate_arc(
        centre,
        radius_km,
        last_point,
        to,
        clockwise=segment.direction == "cw",
        steps=steps,
    )
    # first point is last_point itself
    return coords[1:]


def _resolve_circle(segment: CircleSegment, steps: int) -> List[Coordinate]:
    radius_km = radius_km_from_text(segment.radius)
    centre = parse_latlon_pair(segment.centre)
    return tessellate_circle(centre, radius_km, steps=steps)


def resolve_boundary(
    segments: Sequence[BoundarySegment],
    context: Optional[ConversionContext] = None,
    steps: int = DEFAULT_GEOMETRY_DETAIL,
) -> ConversionContext:
    """Append the coordinates of every segment, in order, to the context."""
    if context is None:
        context = ConversionContext()
    for segment in segments:
        if isinstance(segment, LineSegment):
            coords = _resolve_line(segment)
        elif isinstance(segment, ArcSegment):
            coords = _resolve_arc(segment, context.last_point, steps)
        elif isinstance(segment, CircleSegment):
            coords = _resolve_circle(segment, steps)
        else:
            raise UnsupportedBoundaryTypeError(type(segment).__name__)
        context.coordinates.extend(coords)
    return context
