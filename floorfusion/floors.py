"""Floor and floor-plan data structures.

A floor plan is the static, ordered list of building levels supplied by the
deployment. Floors that define an altitude must be in ascending order so that
altitude bucketing works. The plan also declares which altitude convention its
altitudes use: absolute GPS altitudes, or heights relative to the ground
floor. Raw GPS altitude is only compared against absolute plans.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

WifiFingerprint = Dict[str, float]  # BSSID -> mean RSSI in dBm


class AltitudeReference(str, Enum):
    """Convention used by ``Floor.altitude`` within one floor plan."""

    ABSOLUTE = "absolute"  # GPS-referenced, meters above the provider datum
    RELATIVE = "relative"  # meters above the ground floor (barometric)


@dataclass
class Floor:
    """
    One building level.

    Attributes:
        id: Stable identifier, encoded in the floor's QR code.
        value: Short key, e.g. "ground", "first".
        label: Display name.
        altitude: Reference altitude in meters in the plan's convention, or
                  None if the floor has not been surveyed.
        wifi_fingerprint: BSSID -> mean RSSI (dBm). Empty if uncollected.
    """

    id: str
    value: str
    label: str
    altitude: Optional[float] = None
    wifi_fingerprint: WifiFingerprint = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.value:
            raise ValueError("Floor.value must be a non-empty string")
        if self.altitude is not None:
            self.altitude = float(self.altitude)
        self.wifi_fingerprint = {
            str(bssid): float(rssi) for bssid, rssi in self.wifi_fingerprint.items()
        }

    @property
    def has_fingerprint(self) -> bool:
        return len(self.wifi_fingerprint) > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "value": self.value,
            "label": self.label,
            "altitude": self.altitude,
            "wifiFingerprint": dict(self.wifi_fingerprint),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Floor":
        value = data["value"]
        fingerprint = data.get("wifiFingerprint", data.get("wifi_fingerprint")) or {}
        return cls(
            id=str(data.get("id", value)),
            value=value,
            label=data.get("label", value),
            altitude=data.get("altitude"),
            wifi_fingerprint=fingerprint,
        )


class FloorPlan:
    """
    Ordered list of floors plus the altitude convention they use.

    Args:
        floors: Floors ordered from lowest to highest.
        altitude_reference: Convention of every ``Floor.altitude`` in the plan.
        ground_value: ``value`` of the ground floor (target of barometric
                      recalibration). Defaults to "ground" when present,
                      else the first floor.

    Raises:
        ValueError: On an empty plan, duplicate ids/values, or floor altitudes
                    that are not in ascending order.

    Example:
        >>> plan = FloorPlan([
        ...     Floor("f0", "ground", "Ground Floor", altitude=0.0),
        ...     Floor("f1", "first", "1st Floor", altitude=4.0),
        ... ])
        >>> plan.index_of("first")
        1
    """

    def __init__(
        self,
        floors: Sequence[Floor],
        altitude_reference: AltitudeReference = AltitudeReference.RELATIVE,
        ground_value: Optional[str] = None,
    ):
        if not floors:
            raise ValueError("FloorPlan requires at least one floor")
        self.floors: List[Floor] = list(floors)
        self.altitude_reference = AltitudeReference(altitude_reference)

        values = [f.value for f in self.floors]
        ids = [f.id for f in self.floors]
        if len(set(values)) != len(values):
            raise ValueError(f"Duplicate floor values in plan: {values}")
        if len(set(ids)) != len(ids):
            raise ValueError(f"Duplicate floor ids in plan: {ids}")

        altitudes = [f.altitude for f in self.floors if f.altitude is not None]
        if any(b <= a for a, b in zip(altitudes, altitudes[1:])):
            raise ValueError(
                f"Floor altitudes must be strictly ascending, got {altitudes}"
            )

        if ground_value is None:
            ground_value = "ground" if "ground" in values else values[0]
        if ground_value not in values:
            raise ValueError(f"Ground floor '{ground_value}' not in plan {values}")
        self.ground_value = ground_value

    def __len__(self) -> int:
        return len(self.floors)

    def __getitem__(self, index: int) -> Floor:
        return self.floors[index]

    def __iter__(self):
        return iter(self.floors)

    def __repr__(self) -> str:
        return (
            f"FloorPlan(floors={[f.value for f in self.floors]}, "
            f"altitude_reference={self.altitude_reference.value})"
        )

    def index_of(self, value: str) -> Optional[int]:
        """Index of the floor with ``value``, or None."""
        for i, floor in enumerate(self.floors):
            if floor.value == value:
                return i
        return None

    def find_by_id(self, floor_id: str) -> Optional[Floor]:
        """Floor whose ``id`` matches (QR-code selection), or None."""
        for floor in self.floors:
            if floor.id == floor_id:
                return floor
        return None

    def floors_with_altitude(self) -> List[Floor]:
        """Floors that define an altitude, in ascending altitude order."""
        return [f for f in self.floors if f.altitude is not None]

    @property
    def ground_index(self) -> int:
        return self.index_of(self.ground_value)

    @property
    def ground_floor(self) -> Floor:
        return self.floors[self.ground_index]

    def clamp_index(self, index: int) -> int:
        return max(0, min(len(self.floors) - 1, int(index)))

    def with_fingerprints(self, stored_floors: Sequence[Floor]) -> "FloorPlan":
        """Return a copy whose fingerprints are replaced by stored ones.

        Stored floors are matched by ``value``; floors without a stored entry
        keep their current fingerprint.
        """
        stored = {f.value: f.wifi_fingerprint for f in stored_floors if f.has_fingerprint}
        merged = [
            Floor(
                id=f.id,
                value=f.value,
                label=f.label,
                altitude=f.altitude,
                wifi_fingerprint=stored.get(f.value, f.wifi_fingerprint),
            )
            for f in self.floors
        ]
        return FloorPlan(merged, self.altitude_reference, self.ground_value)

    def to_dicts(self) -> List[Dict[str, Any]]:
        return [f.to_dict() for f in self.floors]


FLOOR_HEIGHT = 4.0

_DEFAULT_FLOORS = [
    ("gymnasium", "Gymnasium"),
    ("ground", "Ground Floor"),
    ("first", "1st Floor"),
    ("second", "2nd Floor"),
    ("third", "3rd Floor"),
    ("fourth", "4th Floor"),
]


def default_floor_plan() -> FloorPlan:
    """Static floor list of the deployed building (relative altitudes)."""
    floors = [
        Floor(id=f"floor-{i}", value=value, label=label, altitude=(i - 1) * FLOOR_HEIGHT)
        for i, (value, label) in enumerate(_DEFAULT_FLOORS)
    ]
    return FloorPlan(floors, AltitudeReference.RELATIVE, ground_value="ground")
