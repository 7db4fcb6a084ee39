"""Persistence for collected floor fingerprints and the dynamic-mode flag.

Floors (with their fingerprints) are stored JSON-serialized under a single
key of a ``KeyValueStore``. Only the admin collection flow writes them; the
session reads them at startup.

Stored layout (key ``wifi_fingerprints``):
    [
      {"id": "...", "value": "ground", "label": "...", "altitude": 0.0,
       "wifiFingerprint": {"aa:bb:cc:dd:ee:ff": -52.4, ...}},
      ...
    ]
"""

import json
import logging
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Union

from floorfusion.floors import Floor
from floorfusion.sensors.providers import KeyValueStore

logger = logging.getLogger(__name__)

WIFI_STORAGE_KEY = "wifi_fingerprints"
DYNAMIC_MODE_KEY = "DYNAMIC_FLOOR_PLAN_ENABLED"


class MemoryKeyValueStore(KeyValueStore):
    """Process-local store."""

    def __init__(self, initial: Optional[Mapping[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileKeyValueStore(KeyValueStore):
    """Store persisted as one JSON object on disk.

    The file is rewritten on every ``set``/``delete``; a missing file reads
    as an empty store.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not contain a JSON object")
        return data

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    def get(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def delete(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)


class FingerprintStore:
    """Typed access to stored floors and the dynamic-mode flag."""

    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    def save_floors(self, floors: Sequence[Floor]) -> None:
        self.kv.set(WIFI_STORAGE_KEY, json.dumps([f.to_dict() for f in floors]))
        logger.info("Saved %d floor fingerprint(s)", len(floors))

    def load_floors(self) -> List[Floor]:
        """
        Stored floors, or an empty list when nothing usable is stored.

        Unreadable data is logged and treated as "no fingerprints"; the caller
        then runs without Wi-Fi matching rather than failing.
        """
        try:
            raw = self.kv.get(WIFI_STORAGE_KEY)
            if not raw:
                return []
            return [Floor.from_dict(entry) for entry in json.loads(raw)]
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.error("Failed to load Wi-Fi fingerprints: %s", exc)
            return []

    def update_floor_fingerprint(self, floor_value: str, fingerprint: Mapping[str, float]) -> bool:
        """
        Replace the fingerprint of one stored floor.

        Returns:
            False if no stored floor has ``floor_value``.
        """
        floors = self.load_floors()
        for floor in floors:
            if floor.value == floor_value:
                floor.wifi_fingerprint = {k: float(v) for k, v in fingerprint.items()}
                self.save_floors(floors)
                return True
        logger.warning("No stored floor '%s' to update", floor_value)
        return False

    def set_dynamic_enabled(self, enabled: bool) -> None:
        self.kv.set(DYNAMIC_MODE_KEY, "true" if enabled else "false")

    def is_dynamic_enabled(self) -> bool:
        try:
            return self.kv.get(DYNAMIC_MODE_KEY) == "true"
        except (OSError, ValueError) as exc:
            logger.error("Failed to read dynamic mode flag: %s", exc)
            return False


def open_store(path: Optional[Union[str, Path]] = None) -> KeyValueStore:
    """JSON file store at ``path`` (``~`` expanded), or an in-memory store if None."""
    if path is None:
        return MemoryKeyValueStore()
    return JsonFileKeyValueStore(Path(path).expanduser())
