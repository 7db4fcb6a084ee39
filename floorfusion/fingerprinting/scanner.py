"""Averaged Wi-Fi fingerprints from consecutive scans."""

import asyncio
import logging
from collections import defaultdict
from typing import Dict, List, Optional, Sequence

import numpy as np

from floorfusion.config import WifiConfig
from floorfusion.errors import FloorFusionError, ScanStatus
from floorfusion.floors import WifiFingerprint
from floorfusion.sensors.providers import WifiScanProvider
from floorfusion.sensors.stream import SignalStream
from floorfusion.sensors.types import AccessPoint

logger = logging.getLogger(__name__)


def average_scans(scans: Sequence[Sequence[AccessPoint]]) -> WifiFingerprint:
    """
    Average RSSI per BSSID across scans.

    Each BSSID is averaged only over the scans that observed it, which
    smooths transient fluctuation without penalizing intermittent APs.

    Args:
        scans: K scan results, each a list of access points.

    Returns:
        BSSID -> mean RSSI (dBm). Empty if no scan saw any access point.

    Example:
        >>> s1 = [AccessPoint("aa", -50), AccessPoint("bb", -70)]
        >>> s2 = [AccessPoint("aa", -54)]
        >>> average_scans([s1, s2])
        {'aa': -52.0, 'bb': -70.0}
    """
    levels: Dict[str, List[float]] = defaultdict(list)
    for scan in scans:
        for ap in scan:
            levels[ap.bssid].append(float(ap.level))
    return {bssid: float(np.mean(values)) for bssid, values in levels.items()}


class WifiFingerprintScanner:
    """
    Build fingerprints from K scans spaced ``sample_interval`` apart.

    Failures are surfaced, not swallowed: on a provider error ``status`` is
    ``ScanStatus.ERROR``, ``error`` holds the message, ``scan`` returns None,
    and the previous fingerprint is left untouched. An empty result with
    ``status == OK`` genuinely means no access points were visible.
    """

    def __init__(self, provider: WifiScanProvider, config: Optional[WifiConfig] = None):
        self.provider = provider
        self.config = config or WifiConfig()
        self.fingerprint: WifiFingerprint = {}
        self.status = ScanStatus.IDLE
        self.error: Optional[str] = None
        self.stream: SignalStream[WifiFingerprint] = SignalStream("wifi")

    @property
    def loading(self) -> bool:
        return self.status == ScanStatus.SCANNING

    async def scan(
        self,
        samples: Optional[int] = None,
        interval: Optional[float] = None,
    ) -> Optional[WifiFingerprint]:
        samples = self.config.samples if samples is None else samples
        interval = self.config.sample_interval if interval is None else interval
        if samples < 1:
            raise ValueError(f"samples must be >= 1, got {samples}")

        self.status = ScanStatus.SCANNING
        self.error = None
        scans = []
        try:
            for i in range(samples):
                scans.append(await self.provider.scan())
                if i < samples - 1:
                    await asyncio.sleep(interval)
        except FloorFusionError as exc:
            self.status = ScanStatus.ERROR
            self.error = str(exc) or "Failed to scan Wi-Fi"
            logger.warning("Wi-Fi scan failed: %s", self.error)
            return None

        self.fingerprint = average_scans(scans)
        self.status = ScanStatus.OK
        logger.debug("Fingerprint built from %d scans: %d BSSIDs", samples, len(self.fingerprint))
        self.stream.publish(self.fingerprint)
        return self.fingerprint

    def reset(self) -> None:
        self.fingerprint = {}
        self.status = ScanStatus.IDLE
        self.error = None
        self.stream.clear()
