"""Nearest-neighbor Wi-Fi fingerprint matching against per-floor fingerprints.

Key rules:
    - Distance D(z, f) is Euclidean over the union of BSSIDs seen in either
      fingerprint; an access point missing on one side counts as
      ``missing_rssi`` (-100 dBm) so absence is penalized but finite.
    - The decision rule picks floor* = argmin D(z, f_floor) and accepts it
      only if D < threshold; otherwise the outcome is "no match".
"""

from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence, Tuple

import numpy as np

from floorfusion.floors import Floor

MISSING_RSSI = -100.0
MATCH_THRESHOLD = 20.0


@dataclass(frozen=True)
class FingerprintMatch:
    """Accepted nearest floor and its fingerprint distance."""

    floor: Floor
    distance: float


def fingerprint_distance(
    live: Mapping[str, float],
    stored: Mapping[str, float],
    missing_rssi: float = MISSING_RSSI,
) -> float:
    """
    Distance between a live and a stored fingerprint.

    Args:
        live: BSSID -> RSSI (dBm) from the current scan.
        stored: BSSID -> RSSI (dBm) recorded for a floor.
        missing_rssi: RSSI assumed for a BSSID absent from one side.

    Returns:
        sqrt(Σ (z_b - f_b)²) over the union of BSSIDs. 0.0 if both are empty.

    Examples:
        >>> fingerprint_distance({"a": -50, "b": -60}, {"a": -50, "b": -60})
        0.0
        >>> fingerprint_distance({"a": -50}, {"b": -50})  # no overlap
        70.71067811865476
    """
    bssids = sorted(set(live) | set(stored))
    if not bssids:
        return 0.0

    z = np.array([live.get(b, missing_rssi) for b in bssids], dtype=float)
    f = np.array([stored.get(b, missing_rssi) for b in bssids], dtype=float)
    return float(np.linalg.norm(z - f))


def rank_floors(
    live: Mapping[str, float],
    floors: Sequence[Floor],
    missing_rssi: float = MISSING_RSSI,
) -> List[Tuple[Floor, float]]:
    """
    Distances from ``live`` to every surveyed floor, nearest first.

    Floors with an empty fingerprint are skipped. Ties keep floor order.
    """
    scored = [
        (floor, fingerprint_distance(live, floor.wifi_fingerprint, missing_rssi))
        for floor in floors
        if floor.has_fingerprint
    ]
    scored.sort(key=lambda item: item[1])
    return scored


def match_fingerprint(
    live: Mapping[str, float],
    floors: Sequence[Floor],
    threshold: float = MATCH_THRESHOLD,
    missing_rssi: float = MISSING_RSSI,
) -> Optional[FingerprintMatch]:
    """
    Nearest-neighbor floor match with rejection threshold.

    Args:
        live: Current averaged fingerprint.
        floors: Floors, typically with stored fingerprints.
        threshold: Maximum accepted distance (exclusive).
        missing_rssi: RSSI assumed for missing BSSIDs.

    Returns:
        ``FingerprintMatch`` for the nearest floor if its distance is below
        ``threshold``. None when there is nothing to compare (empty live
        fingerprint, no surveyed floors) or when the best distance is too
        large; the latter is a normal "insufficient signal" outcome.

    Example:
        >>> floors = [Floor("1", "ground", "Ground", wifi_fingerprint={"ap": -40})]
        >>> match_fingerprint({"ap": -42}, floors).floor.value
        'ground'
    """
    if not live:
        return None
    ranked = rank_floors(live, floors, missing_rssi)
    if not ranked:
        return None

    floor, distance = ranked[0]
    if distance < threshold:
        return FingerprintMatch(floor=floor, distance=distance)
    return None
