"""
Utility territory lookup.

Territories group states (and, optionally, specific cities) under a utility
brand. The tag is a display/analytics annotation and is never written back
onto stored installations.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple


@dataclass(frozen=True)
class UtilityTerritory:
    code: str
    name: str
    color: str
    states: Tuple[str, ...] = ()
    cities: Optional[Tuple[str, ...]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "code": self.code,
            "name": self.name,
            "states": list(self.states),
            "color": self.color,
        }
        if self.cities is not None:
            data["cities"] = list(self.cities)
        return data


UTILITY_TERRITORIES: Tuple[UtilityTerritory, ...] = (
    UtilityTerritory(
        code="PAC_GRID",
        name="Pacific Grid Authority",
        states=("CA", "OR", "WA"),
        color="#00bff0",
    ),
    UtilityTerritory(
        code="SOUTHWEST_POWER",
        name="Southwest Power Alliance",
        states=("AZ", "NV", "NM"),
        color="#ff7a45",
    ),
    UtilityTerritory(
        code="SUNBELT_ENERGY",
        name="Sunbelt Energy Cooperative",
        states=("TX", "OK"),
        color="#f5b739",
    ),
    UtilityTerritory(
        code="ATLANTIC_GRID",
        name="Atlantic Grid Services",
        states=("NY", "NJ", "MA", "CT", "PA", "MD"),
        color="#7d6cfa",
    ),
    UtilityTerritory(
        code="MIDWEST_UTIL",
        name="Midwest Utility Network",
        states=("IL", "OH", "MI", "WI", "MN"),
        color="#3cc88f",
    ),
)

DEFAULT_TERRITORY = UtilityTerritory(
    code="INDEPENDENT",
    name="Independent Utility",
    color="#8a9fb2",
)


def _normalize(value: Any) -> str:
    return str(value).strip().upper() if value else ""


def resolve_utility_territory(
    installation: Optional[Mapping[str, Any]] = None,
    territories: Tuple[UtilityTerritory, ...] = UTILITY_TERRITORIES,
) -> UtilityTerritory:
    """
    Resolve the territory for an installation-like mapping.

    City overrides win over state matches; within each pass the first
    territory in declaration order wins. Anything unmapped falls back to
    DEFAULT_TERRITORY.
    """
    installation = installation or {}
    state = _normalize(installation.get("state"))
    city = _normalize(installation.get("city"))

    if city:
        for territory in territories:
            if territory.cities and city in territory.cities:
                return territory

    if state:
        for territory in territories:
            if state in territory.states:
                return territory

    return DEFAULT_TERRITORY
