import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, fields
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from shapely.geometry import Polygon, mapping

from _boundary import (
    ArcSegment,
    BoundarySegment,
    CircleSegment,
    ConversionContext,
    LineSegment,
    resolve_boundary,
    segment_from_dict,
)
from _errors import (
    AirspaceGeometryError,
    ArcMissingPrecedingPointError,
    DegeneratePolygonError,
    EmptyLineSegmentError,
    InvalidAirspaceDefinitionError,
    InvalidArcParameterError,
    InvalidCeilingError,
    InvalidGeometryError,
    MalformedCoordinateError,
    UnmappedAirspaceTypeError,
    UnrepairableGeometryError,
    UnsupportedBoundaryTypeError,
)
from _geo import (
    DEFAULT_GEOMETRY_DETAIL,
    Coordinate,
    ValidityReport,
    assemble_ring,
    validate_ring,
)
from _mapping import ground_service_for, map_class_and_type
from _parser import parse_ceiling
from _repair import repair_ring

logger = logging.getLogger(__name__)

__all__ = [
    "AirspaceConverter",
    "AirspaceGeometryError",
    "ArcMissingPrecedingPointError",
    "ArcSegment",
    "CircleSegment",
    "ConversionContext",
    "ConverterConfig",
    "DegeneratePolygonError",
    "EmptyLineSegmentError",
    "InvalidAirspaceDefinitionError",
    "InvalidArcParameterError",
    "InvalidCeilingError",
    "InvalidGeometryError",
    "LineSegment",
    "MalformedCoordinateError",
    "UnmappedAirspaceTypeError",
    "UnrepairableGeometryError",
    "UnsupportedBoundaryTypeError",
    "ValidityReport",
    "build_ring",
]

# camelCase keys used by existing converter configuration files
_CONFIG_ALIASES = {
    "validateGeometries": "validate_geometries",
    "fixGeometries": "fix_geometries",
    "geometryDetail": "geometry_detail",
    "skipInvalid": "skip_invalid",
    "maxWorkers": "max_workers",
}


@dataclass(frozen=True)
class ConverterConfig:
    # Validate each built geometry, including self intersections.
    validate_geometries: bool = True
    # Try to fix invalid geometries. This potentially alters the airspace shape!
    fix_geometries: bool = False
    # Steps used to tessellate arcs and circles; higher is smoother.
    geometry_detail: int = DEFAULT_GEOMETRY_DETAIL
    # Log and drop airspaces that fail instead of aborting the whole run.
    skip_invalid: bool = False
    max_workers: int = 1

    def __post_init__(self):
        for name in ("validate_geometries", "fix_geometries", "skip_invalid"):
            if not isinstance(getattr(self, name), bool):
                raise ValueError(
                    f"Missing or invalid config parameter '{name}': {getattr(self, name)!r}"
                )
        for name in ("geometry_detail", "max_workers"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValueError(f"Missing or invalid config parameter '{name}': {value!r}")

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "ConverterConfig":
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in values.items():
            name = _CONFIG_ALIASES.get(key, key)
            if name not in known:
                raise ValueError(f"Unknown config parameter '{key}'")
            kwargs[name] = value
        return cls(**kwargs)


def _as_segment(segment) -> BoundarySegment:
    if isinstance(segment, (LineSegment, ArcSegment, CircleSegment)):
        return segment
    if isinstance(segment, Mapping):
        return segment_from_dict(segment)
    raise UnsupportedBoundaryTypeError(type(segment).__name__)


def build_ring(
    boundary: Sequence[Any],
    *,
    ident: Optional[str] = None,
    seqno: Optional[Any] = None,
    config: Optional[ConverterConfig] = None,
) -> List[Coordinate]:
    """Resolve a boundary into a closed, counter-clockwise polygon ring.

    ``boundary`` holds segment values or their decoded dict form. Depending on
    the config the ring is repaired and/or validated; either a valid ring is
    returned or an AirspaceGeometryError carrying ident/seqno is raised."""
    config = config or ConverterConfig()
    try:
        context = ConversionContext(ident=ident, seqno=seqno)
        segments = [_as_segment(s) for s in boundary]
        resolve_boundary(segments, context, steps=config.geometry_detail)
        ring = assemble_ring(context.coordinates)

        if config.fix_geometries:
            report = validate_ring(ring)
            if not report.ok:
                logger.info(
                    "Repairing geometry of airspace '%s' in sequence number '%s'",
                    ident,
                    seqno,
                )
                ring = repair_ring(ring)
        if config.validate_geometries:
            report = validate_ring(ring)
            if not report.ok:
                raise InvalidGeometryError(self_intersection=report.self_intersection)
        return ring
    except AirspaceGeometryError as e:
        raise e.with_context(ident, seqno)


def _clean(value):
    """Recursively drop None, empty strings and empty containers."""
    if isinstance(value, Mapping):
        cleaned = {k: _clean(v) for k, v in value.items()}
        return {k: v for k, v in cleaned.items() if v not in (None, "", {}, [])}
    if isinstance(value, list):
        cleaned = [_clean(v) for v in value]
        return [v for v in cleaned if v not in (None, "", {}, [])]
    return value


class AirspaceConverter:
    """Converts decoded airspace definitions into a GeoJSON FeatureCollection.

    Each airspace is a mapping with 'name', 'type', optional 'localType',
    'class', 'id' and 'rules', and a 'geometry' list of definitions holding
    'seqno', 'upper', 'lower' and 'boundary'. Each geometry definition becomes
    one Feature."""

    def __init__(
        self,
        config: Optional[ConverterConfig] = None,
        services: Optional[Iterable[Mapping[str, Any]]] = None,
    ):
        self.config = config or ConverterConfig()
        self.services = list(services) if services is not None else None

    def convert(self, airspaces: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
        airspaces = list(airspaces)
        if self.config.max_workers > 1:
            with ThreadPoolExecutor(max_workers=self.config.max_workers) as pool:
                results = list(pool.map(self._convert_one, airspaces))
        else:
            results = [self._convert_one(a) for a in airspaces]
        features = [f for feats in results for f in feats]
        return {"type": "FeatureCollection", "features": features}

    def _convert_one(self, airspace: Mapping[str, Any]) -> List[Dict[str, Any]]:
        try:
            return self.create_airspace_features(airspace)
        except AirspaceGeometryError as e:
            if not self.config.skip_invalid:
                raise
            logger.warning("Skipping airspace: %s", e)
            return []

    def create_airspace_features(self, airspace: Mapping[str, Any]) -> List[Dict[str, Any]]:
        if not isinstance(airspace, Mapping):
            raise InvalidAirspaceDefinitionError(
                f"Airspace definition must be an object, got {type(airspace).__name__}"
            )
        name = airspace.get("name")
        definitions = airspace.get("geometry") or []
        if not isinstance(definitions, list) or not all(
            isinstance(d, Mapping) for d in definitions
        ):
            raise InvalidAirspaceDefinitionError(
                "Airspace 'geometry' must be a list of objects", ident=name
            )
        try:
            mapped = map_class_and_type(
                airspace.get("type"), airspace.get("localType"), airspace.get("class")
            )
        except AirspaceGeometryError as e:
            raise e.with_context(name, None)
        rules = airspace.get("rules")
        airspace_id = airspace.get("id")

        features = []
        for definition in definitions:
            # sequence number '0' if none is defined
            seqno = definition.get("seqno") or 0
            try:
                upper = parse_ceiling(definition.get("upper"))
                lower = parse_ceiling(definition.get("lower"))
            except AirspaceGeometryError as e:
                raise e.with_context(name, seqno)
            ring = build_ring(
                definition.get("boundary") or [],
                ident=name,
                seqno=seqno,
                config=self.config,
            )
            properties = {
                "name": name,
                "type": mapped["type"],
                "class": mapped["class"],
                "upperCeiling": upper,
                "lowerCeiling": lower,
                "activatedByNotam": bool(rules) and "NOTAM" in rules,
                "activity": mapped.get("activity", "NONE"),
                "remarks": ", ".join(rules) if rules else None,
            }
            if airspace_id is not None and self.services:
                properties["groundService"] = ground_service_for(
                    airspace_id, self.services
                )
            features.append(
                {
                    "type": "Feature",
                    "properties": _clean(properties),
                    "geometry": mapping(Polygon(ring)),
                }
            )
        return features
