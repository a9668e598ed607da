import math
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from pyproj import Geod
from shapely.geometry import LinearRing, LineString, Polygon
from shapely.validation import explain_validity

from _errors import (
    DegeneratePolygonError,
    InvalidArcParameterError,
    MalformedCoordinateError,
)

Coordinate = Tuple[float, float]  # (lon, lat) in decimal degrees

# Mean earth radius (meters); all great-circle math runs on this sphere.
EARTH_RADIUS_M = 6371008.8
GEOD = Geod(a=EARTH_RADIUS_M, b=EARTH_RADIUS_M)

NM_TO_KM = 1.852
DEFAULT_GEOMETRY_DETAIL = 100


# ============== Utilities ==============

LAT_TOKEN_RE = re.compile(r"([0-9]{2})([0-9]{2})([0-9]{2})([NS])")
LON_TOKEN_RE = re.compile(r"([0-9]{3})([0-9]{2})([0-9]{2})([EW])")
LATLON_PAIR_RE = re.compile(r"([0-9]{6}[NS])\s*([0-9]{7}[EW])")
RADIUS_RE = re.compile(r"([0-9]+(?:\.[0-9]+)?)\s*(?:NM|nm)?")


def dms_token_to_deg(token: str) -> float:
    """
    Convert 'DDMMSSN' or 'DDDMMSSW' to signed decimal degrees.
    Examples:
      '595835N'  -> +59 +58/60 +35/3600 -> 59.976389
      '0301229W' -> -(30 +12/60 +29/3600) -> -30.208056
    Only the fixed-width forms are accepted: six digits for latitude,
    seven for longitude, no separators.
    """
    if not isinstance(token, str):
        raise MalformedCoordinateError(repr(token))
    token = token.strip()
    m = LAT_TOKEN_RE.fullmatch(token) or LON_TOKEN_RE.fullmatch(token)
    if not m:
        raise MalformedCoordinateError(token)
    dd, mm, ss = (int(g) for g in m.groups()[:3])
    hemi = m.group(4)
    if mm >= 60 or ss >= 60:
        raise MalformedCoordinateError(token, "Minutes or seconds out of range in")
    deg = dd + mm / 60.0 + ss / 3600.0
    limit = 90.0 if hemi in ("N", "S") else 180.0
    if deg > limit:
        raise MalformedCoordinateError(token, "Degrees out of range in")
    if hemi in ("S", "W"):
        deg = -deg
    return deg


def parse_latlon_pair(pair: str) -> Coordinate:
    """
    Parse '595835N 0301229E' into (lon, lat) decimal degrees.
    The compact form '595835N0301229E' is accepted as well.
    """
    if not isinstance(pair, str):
        raise MalformedCoordinateError(repr(pair))
    m = LATLON_PAIR_RE.fullmatch(pair.strip())
    if not m:
        raise MalformedCoordinateError(pair)
    lat = dms_token_to_deg(m.group(1))
    lon = dms_token_to_deg(m.group(2))
    return (lon, lat)


def radius_km_from_text(radius, field: str = "radius") -> float:
    """
    Convert an arc/circle radius in nautical miles to kilometers.
    '10 NM' -> 18.52, '2.5nm' -> 4.63, '4' -> 7.408. Plain numbers are NM too.
    """
    if isinstance(radius, bool):
        raise InvalidArcParameterError(field, radius)
    if isinstance(radius, (int, float)):
        value = float(radius)
    elif isinstance(radius, str):
        m = RADIUS_RE.fullmatch(radius.strip())
        if not m:
            raise InvalidArcParameterError(field, radius)
        value = float(m.group(1))
    else:
        raise InvalidArcParameterError(field, radius)
    if not math.isfinite(value) or value <= 0:
        raise InvalidArcParameterError(field, radius)
    return value * NM_TO_KM


def bearing(origin: Coordinate, target: Coordinate) -> float:
    """Initial great-circle bearing from origin to target, degrees in (-180, 180]."""
    az, _, _ = GEOD.inv(origin[0], origin[1], target[0], target[1])
    return az


def distance_km(a: Coordinate, b: Coordinate) -> float:
    _, _, dist_m = GEOD.inv(a[0], a[1], b[0], b[1])
    return dist_m / 1000.0


def unwrap_lon(lon: float, reference: float) -> float:
    """Shift lon by whole turns so it lies within 180 degrees of reference.

    Rings crossing the antimeridian stay continuous and may hold longitudes
    beyond +-180."""
    if not math.isfinite(lon):
        return lon
    while lon - reference > 180.0:
        lon -= 360.0
    while lon - reference < -180.0:
        lon += 360.0
    return lon


def destinations(
    center: Coordinate, radius_km: float, bearings: Sequence[float]
) -> List[Coordinate]:
    """Project every bearing from center at a fixed great-circle distance."""
    n = len(bearings)
    if n == 0:
        return []
    lons, lats, _ = GEOD.fwd(
        [center[0]] * n, [center[1]] * n, list(bearings), [radius_km * 1000.0] * n
    )
    return [(unwrap_lon(float(lon), center[0]), float(lat)) for lon, lat in zip(lons, lats)]


def geodesic_area(polygon: Polygon) -> float:
    """Unsigned area of a lon/lat polygon in square meters."""
    area, _ = GEOD.geometry_area_perimeter(polygon)
    return abs(area)


# ============== Tessellation ==============


def _check_steps(steps: int) -> None:
    if isinstance(steps, bool) or not isinstance(steps, int) or steps < 1:
        raise ValueError(f"Geometry detail must be a positive integer, got {steps!r}")


def tessellate_arc(
    center: Coordinate,
    radius_km: float,
    start: Coordinate,
    end: Coordinate,
    clockwise: bool = True,
    steps: int = DEFAULT_GEOMETRY_DETAIL,
) -> List[Coordinate]:
    """
    Approximate the arc around center from start to end with steps+1 points.

    Points are always generated clockwise (increasing bearing). For a
    counter-clockwise arc the endpoints are swapped before generation and the
    result is reversed afterwards, so the returned sequence always runs from
    start to end. The first and last points are exactly start and end; the
    points in between sit at radius_km from the center.
    """
    _check_steps(steps)
    first, last = (start, end) if clockwise else (end, start)
    start_bearing = bearing(center, first) % 360.0
    end_bearing = bearing(center, last) % 360.0
    sweep = (end_bearing - start_bearing) % 360.0
    if sweep == 0.0:
        sweep = 360.0
    azimuths = [start_bearing + sweep * i / steps for i in range(steps + 1)]
    coords = destinations(center, radius_km, azimuths)
    coords[0] = (float(first[0]), float(first[1]))
    coords[-1] = (float(last[0]), float(last[1]))
    if not clockwise:
        coords.reverse()
    return coords


def tessellate_circle(
    center: Coordinate, radius_km: float, steps: int = DEFAULT_GEOMETRY_DETAIL
) -> List[Coordinate]:
    """Closed polyline of steps+1 points around center, starting due north."""
    _check_steps(steps)
    coords = destinations(center, radius_km, [360.0 * i / steps for i in range(steps + 1)])
    coords[-1] = coords[0]
    return coords


# ============== Polygon Assembly ==============


def signed_area(ring: Sequence[Coordinate]) -> float:
    """Planar shoelace area; positive for counter-clockwise rings."""
    total = 0.0
    for (x1, y1), (x2, y2) in zip(ring, ring[1:]):
        total += x1 * y2 - x2 * y1
    return total / 2.0


def orient_ring(ring: Sequence[Coordinate]) -> List[Coordinate]:
    """Return the ring wound counter-clockwise (right-hand rule)."""
    if signed_area(ring) < 0:
        return list(reversed(ring))
    return list(ring)


def assemble_ring(coords: Sequence[Coordinate]) -> List[Coordinate]:
    """
    Build a closed, counter-clockwise ring from lon/lat coords, closing it if
    needed.
    """
    ring: List[Coordinate] = []
    for c in coords:
        lon, lat = float(c[0]), float(c[1])
        if ring:
            lon = unwrap_lon(lon, ring[-1][0])
        ring.append((lon, lat))
    if ring and ring[0] != ring[-1]:
        ring.append(ring[0])
    if len(ring) < 4:
        raise DegeneratePolygonError(
            f"Polygon requires at least 4 points after closing, got {len(ring)}"
        )
    return orient_ring(ring)


# ============== Validation ==============


@dataclass(frozen=True)
class ValidityReport:
    is_valid: bool
    is_simple: bool
    self_intersection: Optional[Coordinate] = None

    @property
    def ok(self) -> bool:
        return self.is_valid and self.is_simple


# explain_validity() reports e.g. 'Self-intersection[30.5 60.1]'
VALIDITY_LOCATION_RE = re.compile(r"\[\s*([-+\d.eE]+)\s+([-+\d.eE]+)\s*\]")


def _scan_edge_crossings(ring: Sequence[Coordinate]) -> Optional[Coordinate]:
    edges = [LineString([a, b]) for a, b in zip(ring, ring[1:])]
    n = len(edges)
    for i in range(n):
        for j in range(i + 2, n):
            if i == 0 and j == n - 1:
                continue  # joined through the closing point
            hit = edges[i].intersection(edges[j])
            if not hit.is_empty:
                pt = hit.representative_point()
                return (pt.x, pt.y)
    return None


def find_self_intersection(
    ring: Sequence[Coordinate], polygon: Optional[Polygon] = None
) -> Optional[Coordinate]:
    """Locate one point where the ring crosses or touches itself, if any."""
    if polygon is None:
        polygon = Polygon(ring)
    m = VALIDITY_LOCATION_RE.search(explain_validity(polygon))
    if m:
        return (float(m.group(1)), float(m.group(2)))
    return _scan_edge_crossings(ring)


def validate_ring(ring: Sequence[Coordinate]) -> ValidityReport:
    """
    Check that the ring is simple (no two non-adjacent edges meet) and that,
    read as a polygon, it bounds a single valid area. Read-only.
    """
    ring = [tuple(c) for c in ring]
    if len(ring) < 4 or ring[0] != ring[-1]:
        return ValidityReport(is_valid=False, is_simple=False)
    polygon = Polygon(ring)
    is_valid = polygon.is_valid
    is_simple = LinearRing(ring).is_simple
    witness = None
    if not (is_valid and is_simple):
        witness = find_self_intersection(ring, polygon)
    return ValidityReport(is_valid=is_valid, is_simple=is_simple, self_intersection=witness)
