"""Best-effort repair of invalid boundary rings.

Each stage is a pure function over a coordinate sequence. ``repair_ring`` runs
them in a fixed order and stops at the first stage that yields a valid polygon.
Repairing ALTERS the geometry: depending on how broken the input is, the
result may differ a lot from the source boundary.
"""

import logging
from typing import List, Optional, Sequence

from shapely.errors import GEOSException
from shapely.geometry import LineString, MultiPoint, Polygon
from shapely.geometry.polygon import orient
from shapely.ops import polygonize, unary_union

from _errors import UnrepairableGeometryError
from _geo import GEOD, Coordinate, bearing, geodesic_area, validate_ring

logger = logging.getLogger(__name__)

# Points closer than this (km) to an already kept point are dropped.
DUPLICATE_THRESHOLD_KM = 0.001


def remove_duplicates(
    coords: Sequence[Coordinate], threshold_km: float = DUPLICATE_THRESHOLD_KM
) -> List[Coordinate]:
    """Drop every point within threshold_km of a point kept before it."""
    kept: List[Coordinate] = []
    for lon, lat in coords:
        if kept:
            n = len(kept)
            _, _, dists = GEOD.inv(
                [lon] * n, [lat] * n, [k[0] for k in kept], [k[1] for k in kept]
            )
            if min(dists) < threshold_km * 1000.0:
                continue
        kept.append((lon, lat))
    return kept


def _whole_degrees(value: float) -> int:
    """Snap a bearing to the nearest whole degree in 1..360 (north is 360)."""
    snapped = int(round(value)) % 360
    return 360 if snapped == 0 else snapped


def _opposite(degrees: int) -> int:
    return _whole_degrees(degrees + 180)


def remove_overlap_points(coords: Sequence[Coordinate]) -> List[Coordinate]:
    """
    Walk the path and drop each point where it turns straight back on itself,
    i.e. where the bearing to the next point is the reverse of the bearing
    that led into the point.
    """
    kept: List[Coordinate] = []
    last_bearing: Optional[int] = None
    for index, coord in enumerate(coords):
        if index == len(coords) - 1:
            kept.append(coord)
            break
        next_bearing = _whole_degrees(bearing(coord, coords[index + 1]))
        if last_bearing is None or _opposite(next_bearing) != last_bearing:
            kept.append(coord)
            last_bearing = next_bearing
    return kept


def largest_simple_polygon(coords: Sequence[Coordinate]) -> Polygon:
    """
    Node the closed path at its self-intersections, polygonize the faces and
    keep the one with the largest geodesic area.
    """
    ring = list(coords)
    if len(ring) < 3:
        raise ValueError(f"Cannot unkink a path of {len(ring)} points")
    if ring[0] != ring[-1]:
        ring.append(ring[0])
    noded = unary_union(LineString(ring))
    faces = [Polygon(face.exterior) for face in polygonize(noded)]
    if not faces:
        raise ValueError("Path does not enclose any area")
    largest = max(faces, key=geodesic_area)
    if not largest.is_valid:
        raise ValueError("Largest face is not a valid polygon")
    return largest


def envelope_polygon(coords: Sequence[Coordinate]) -> Polygon:
    """Axis-aligned bounding rectangle of all points."""
    if not coords:
        raise ValueError("Cannot build an envelope of no points")
    envelope = MultiPoint(list(coords)).envelope
    if not isinstance(envelope, Polygon):
        raise ValueError(f"Envelope of the points is a {envelope.geom_type}")
    return envelope


def _polygon_to_ring(polygon: Polygon) -> List[Coordinate]:
    return [(x, y) for x, y in orient(polygon, sign=1.0).exterior.coords]


def repair_ring(ring: Sequence[Coordinate]) -> List[Coordinate]:
    """
    Try to turn an invalid ring into a valid, simple, counter-clockwise one.

    Raises UnrepairableGeometryError when every stage fails.
    """
    coords = remove_duplicates(ring)
    logger.debug("deduplication kept %d of %d points", len(coords), len(ring))
    coords = remove_overlap_points(coords)
    logger.debug("overlap removal kept %d points", len(coords))

    try:
        fixed = _polygon_to_ring(largest_simple_polygon(coords))
        if validate_ring(fixed).ok:
            return fixed
        logger.debug("largest unkinked face is still invalid")
    except (ValueError, GEOSException) as e:
        logger.debug("unkinking failed: %s", e)

    try:
        fixed = _polygon_to_ring(envelope_polygon(coords))
    except (ValueError, GEOSException) as e:
        raise UnrepairableGeometryError(
            f"Failed to create fixed geometry. {e}", original=e
        ) from e
    logger.debug("falling back to envelope of %d points", len(coords))
    if not validate_ring(fixed).ok:
        raise UnrepairableGeometryError("Failed to create fixed geometry")
    return fixed
