from typing import Optional, Tuple


class AirspaceGeometryError(Exception):
    """Base class for failures while turning an airspace boundary into a polygon.

    Low level helpers raise without context; the boundary resolution entry point
    attaches the airspace identifier and sequence number before re-raising."""

    def __init__(
        self,
        message: str,
        *,
        ident: Optional[str] = None,
        seqno: Optional[object] = None,
        original: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.ident = ident
        self.seqno = seqno
        self.original = original

    def with_context(self, ident: Optional[str], seqno: Optional[object]):
        if self.ident is None:
            self.ident = ident
        if self.seqno is None:
            self.seqno = seqno
        return self

    def __str__(self):
        parts = [self.message]
        if self.ident is not None:
            parts.append(f"for airspace '{self.ident}'")
        if self.seqno is not None:
            parts.append(f"in sequence number '{self.seqno}'")
        return " ".join(parts)


class MalformedCoordinateError(AirspaceGeometryError, ValueError):
    def __init__(self, token: str, reason: str = "Malformed coordinate", **kwargs):
        super().__init__(f"{reason} '{token}'", **kwargs)
        self.token = token


class EmptyLineSegmentError(AirspaceGeometryError):
    pass


class ArcMissingPrecedingPointError(AirspaceGeometryError):
    pass


class InvalidArcParameterError(AirspaceGeometryError):
    def __init__(self, field: str, value: object, **kwargs):
        super().__init__(f"Invalid arc '{field}' '{value}'", **kwargs)
        self.field = field
        self.value = value


class UnsupportedBoundaryTypeError(AirspaceGeometryError):
    def __init__(self, boundary_type: object, **kwargs):
        super().__init__(f"Unsupported boundary type '{boundary_type}'", **kwargs)
        self.boundary_type = boundary_type


class DegeneratePolygonError(AirspaceGeometryError):
    pass


class UnrepairableGeometryError(AirspaceGeometryError):
    pass


class InvalidGeometryError(AirspaceGeometryError):
    def __init__(
        self,
        message: str = "Invalid geometry",
        *,
        self_intersection: Optional[Tuple[float, float]] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.self_intersection = self_intersection

    def __str__(self):
        text = super().__str__()
        if self.self_intersection is not None:
            lon, lat = self.self_intersection
            text += f": Self intersection at [{lon}, {lat}]"
        return text


class InvalidCeilingError(AirspaceGeometryError, ValueError):
    def __init__(self, definition: object, **kwargs):
        super().__init__(f"Invalid ceiling definition '{definition}'", **kwargs)
        self.definition = definition


class UnmappedAirspaceTypeError(AirspaceGeometryError):
    pass


class InvalidAirspaceDefinitionError(AirspaceGeometryError):
    pass
