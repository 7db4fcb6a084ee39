"""Wi-Fi fingerprinting for floor identification.

This package provides:
- Nearest-neighbor floor matching with a rejection threshold
- Averaged fingerprints from consecutive scans
- Persistence of collected per-floor fingerprints

Example:
    >>> from floorfusion.fingerprinting import match_fingerprint
    >>> match = match_fingerprint(live_fingerprint, plan.floors)
    >>> if match is not None:
    ...     print(match.floor.label, match.distance)
"""

from floorfusion.fingerprinting.matcher import (
    MATCH_THRESHOLD,
    MISSING_RSSI,
    FingerprintMatch,
    fingerprint_distance,
    match_fingerprint,
    rank_floors,
)
from floorfusion.fingerprinting.scanner import WifiFingerprintScanner, average_scans
from floorfusion.fingerprinting.storage import (
    DYNAMIC_MODE_KEY,
    WIFI_STORAGE_KEY,
    FingerprintStore,
    JsonFileKeyValueStore,
    MemoryKeyValueStore,
    open_store,
)

__all__ = [
    # Matching
    "MATCH_THRESHOLD",
    "MISSING_RSSI",
    "FingerprintMatch",
    "fingerprint_distance",
    "match_fingerprint",
    "rank_floors",
    # Scanning
    "WifiFingerprintScanner",
    "average_scans",
    # Storage
    "DYNAMIC_MODE_KEY",
    "WIFI_STORAGE_KEY",
    "FingerprintStore",
    "JsonFileKeyValueStore",
    "MemoryKeyValueStore",
    "open_store",
]
