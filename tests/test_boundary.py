from pathlib import Path
import sys
import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from _boundary import (  # noqa: E402
    ArcSegment,
    CircleSegment,
    ConversionContext,
    LineSegment,
    resolve_boundary,
    segment_from_dict,
)
from _errors import (  # noqa: E402
    ArcMissingPrecedingPointError,
    EmptyLineSegmentError,
    InvalidArcParameterError,
    MalformedCoordinateError,
    UnsupportedBoundaryTypeError,
)
from _geo import assemble_ring, distance_km, parse_latlon_pair, validate_ring  # noqa: E402

A = "500000N 0100000E"
B = "500000N 0101000E"
C = "501000N 0100500E"

CENTRE = "500000N 0100000E"
NORTH = "501000N 0100000E"  # ~10 NM north of CENTRE
EAST = "500000N 0101533E"  # ~10 NM east of CENTRE


def test_line_resolves_to_triangle():
    ctx = resolve_boundary([LineSegment(points=(A, B, C))])
    ring = assemble_ring(ctx.coordinates)
    a, b, c = (parse_latlon_pair(t) for t in (A, B, C))
    assert ring == [a, b, c, a]
    report = validate_ring(ring)
    assert report.is_valid and report.is_simple


def test_arc_without_preceding_point():
    arc = ArcSegment(direction="cw", radius="10 NM", centre=CENTRE, to=EAST)
    with pytest.raises(ArcMissingPrecedingPointError):
        resolve_boundary([arc])


def test_line_arc_line_pie_slice():
    segments = [
        LineSegment(points=(CENTRE, NORTH)),
        ArcSegment(direction="cw", radius="10 NM", centre=CENTRE, to=EAST),
        LineSegment(points=(CENTRE,)),
    ]
    ctx = resolve_boundary(segments, steps=20)
    # 2 line points + 20 arc points (start point not repeated) + 1 line point
    assert len(ctx.coordinates) == 23
    assert ctx.coordinates[1] == parse_latlon_pair(NORTH)
    assert ctx.coordinates[2] != ctx.coordinates[1]
    assert ctx.coordinates[21] == parse_latlon_pair(EAST)
    centre = parse_latlon_pair(CENTRE)
    for pt in ctx.coordinates[2:21]:
        assert distance_km(centre, pt) == pytest.approx(18.52, rel=1e-6)
    ring = assemble_ring(ctx.coordinates)
    assert validate_ring(ring).ok


def test_counter_clockwise_arc_takes_long_way_round():
    segments = [
        LineSegment(points=(NORTH,)),
        ArcSegment(direction="ccw", radius="10 NM", centre=CENTRE, to=EAST),
    ]
    ctx = resolve_boundary(segments, steps=40)
    assert ctx.last_point == parse_latlon_pair(EAST)
    lons = [lon for lon, _ in ctx.coordinates]
    # sweeps through the west side of the centre
    assert min(lons) < 10.0 - 0.2


def test_circle_segment():
    ctx = resolve_boundary([CircleSegment(radius="5", centre=CENTRE)], steps=36)
    assert len(ctx.coordinates) == 37
    assert ctx.last_point == ctx.coordinates[0]
    assert validate_ring(assemble_ring(ctx.coordinates)).ok


def test_empty_line_segment():
    with pytest.raises(EmptyLineSegmentError):
        resolve_boundary([LineSegment(points=())])


@pytest.mark.parametrize(
    "arc, field",
    [
        (ArcSegment(direction="left", radius="10 NM", centre=CENTRE, to=EAST), "direction"),
        (ArcSegment(direction="cw", radius="10 KM", centre=CENTRE, to=EAST), "radius"),
    ],
)
def test_invalid_arc_parameter(arc, field):
    with pytest.raises(InvalidArcParameterError) as excinfo:
        resolve_boundary([LineSegment(points=(NORTH,)), arc])
    assert excinfo.value.field == field
    assert field in str(excinfo.value)


def test_malformed_token_in_line():
    with pytest.raises(MalformedCoordinateError):
        resolve_boundary([LineSegment(points=(A, "5000N 01000E"))])


def test_unsupported_segment_object():
    with pytest.raises(UnsupportedBoundaryTypeError):
        resolve_boundary([{"line": [A]}])


def test_contexts_are_independent():
    first = resolve_boundary([LineSegment(points=(A, B))], ConversionContext(ident="one"))
    second = resolve_boundary([LineSegment(points=(C,))], ConversionContext(ident="two"))
    assert len(first.coordinates) == 2
    assert len(second.coordinates) == 1
    assert second.ident == "two"


def test_segment_from_dict():
    assert segment_from_dict({"line": [A, B]}) == LineSegment(points=(A, B))
    assert segment_from_dict(
        {"arc": {"dir": "ccw", "radius": "3 NM", "centre": CENTRE, "to": EAST}}
    ) == ArcSegment(direction="ccw", radius="3 NM", centre=CENTRE, to=EAST)
    assert segment_from_dict({"circle": {"radius": 2, "centre": CENTRE}}) == CircleSegment(
        radius=2, centre=CENTRE
    )


def test_segment_from_dict_missing_arc_field():
    with pytest.raises(InvalidArcParameterError) as excinfo:
        segment_from_dict({"arc": {"dir": "cw", "radius": "3 NM", "centre": CENTRE}})
    assert excinfo.value.field == "to"


@pytest.mark.parametrize(
    "definition", [{"polygon": [A]}, {}, {"line": [A], "circle": {}}, "line"]
)
def test_segment_from_dict_unsupported(definition):
    with pytest.raises(UnsupportedBoundaryTypeError):
        segment_from_dict(definition)
