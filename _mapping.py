import logging
from typing import Any, Dict, Iterable, Mapping, Optional

from _errors import UnmappedAirspaceTypeError

logger = logging.getLogger(__name__)

ALLOWED_TYPES = ("CTA", "TMA", "CTR_P", "CTR", "ATZ", "OTHER", "D", "P", "R")
ALLOWED_LOCALTYPES = ("MATZ", "GLIDER", "RMZ", "TMZ")
ALLOWED_CLASSES = ("A", "B", "C", "D", "E", "F", "G", "NO")

TYPE_WITH_CLASS = {
    "CTA": "CTA",
    "TMA": "TMA",
    "CTR": "CTR",
    "CTR_P": "CTR",
    "ATZ": "ATZ",
    "D": "DANGER",
    "P": "PROHIBITED",
    "R": "RESTRICTED",
}

# 'TYPE|LOCALTYPE' -> mapped type, class and optional extra properties
TYPE_WITH_LOCALTYPE: Dict[str, Dict[str, Any]] = {
    "OTHER|MATZ": {"type": "MATZ", "class": "G"},
    "OTHER|RMZ": {"type": "RMZ", "class": "UNCLASSIFIED"},
    "OTHER|TMZ": {"type": "TMZ", "class": "UNCLASSIFIED"},
    "OTHER|GLIDER": {
        "type": "AERIAL_SPORTING_RECREATIONAL",
        "class": "UNCLASSIFIED",
        "activity": "AEROCLUB_AERIAL_WORK",
    },
}

TYPE_ONLY = {
    "ATZ": {"type": "ATZ", "class": "G"},
    "D": {"type": "DANGER", "class": "UNCLASSIFIED"},
    "P": {"type": "PROHIBITED", "class": "UNCLASSIFIED"},
    "R": {"type": "RESTRICTED", "class": "UNCLASSIFIED"},
}


def map_class_and_type(
    type_: Optional[str], local_type: Optional[str] = None, icao_class: Optional[str] = None
) -> Dict[str, Any]:
    """Map source type/local type/class codes onto the output vocabulary.

    Returns a dict with 'type', 'class' and, for some local types, 'activity'."""
    if type_ not in ALLOWED_TYPES:
        raise UnmappedAirspaceTypeError(
            f"The 'type' value '{type_}' is not in the list of allowed types"
        )
    if local_type is not None and local_type not in ALLOWED_LOCALTYPES:
        raise UnmappedAirspaceTypeError(
            f"The 'localtype' value '{local_type}' is not in the list of allowed localtypes"
        )
    if icao_class is not None and icao_class not in ALLOWED_CLASSES:
        raise UnmappedAirspaceTypeError(
            f"The 'class' value '{icao_class}' is not in the list of allowed classes"
        )

    if icao_class is not None:
        if type_ not in TYPE_WITH_CLASS:
            raise UnmappedAirspaceTypeError(
                f"The 'type' value '{type_}' has no configured mapping"
            )
        # class 'NO' is written as UNCLASSIFIED
        mapped_class = "UNCLASSIFIED" if icao_class == "NO" else icao_class
        return {"type": TYPE_WITH_CLASS[type_], "class": mapped_class}
    if local_type is not None:
        mapped = TYPE_WITH_LOCALTYPE.get(f"{type_}|{local_type}")
        if mapped is None:
            raise UnmappedAirspaceTypeError(
                f"The 'type' value '{type_}' and 'localtype' value '{local_type}' has no configured mapping"
            )
        return dict(mapped)
    if type_ in TYPE_ONLY:
        return dict(TYPE_ONLY[type_])
    raise UnmappedAirspaceTypeError(f"The type value '{type_}' has no configured mapping")


def ground_service_for(
    airspace_id: str, services: Iterable[Mapping[str, Any]]
) -> Optional[Dict[str, str]]:
    """Return callsign/frequency of the first service controlling the airspace."""
    for service in services:
        controls = service.get("controls") or []
        if airspace_id in controls:
            frequency = service.get("frequency")
            if frequency is None:
                logger.warning(
                    "Service '%s' for airspace '%s' has no frequency",
                    service.get("callsign"),
                    airspace_id,
                )
                return None
            return {"callsign": service.get("callsign"), "frequency": str(frequency)}
    return None
