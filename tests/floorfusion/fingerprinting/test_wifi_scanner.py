"""Unit tests for floorfusion/fingerprinting/scanner.py.

Run with: pytest tests/floorfusion/fingerprinting/test_wifi_scanner.py -v
"""

import asyncio

import pytest

from floorfusion.config import WifiConfig
from floorfusion.errors import ScanStatus
from floorfusion.fingerprinting.scanner import WifiFingerprintScanner, average_scans
from floorfusion.sensors.types import AccessPoint
from floorfusion.sim.providers import SimulatedWifiScanProvider

APS = [AccessPoint("aa", -50.0, "Campus"), AccessPoint("bb", -70.0, "Campus")]


class TestAverageScans:
    def test_averages_only_over_observing_scans(self):
        s1 = [AccessPoint("aa", -50.0), AccessPoint("bb", -70.0)]
        s2 = [AccessPoint("aa", -54.0)]
        fp = average_scans([s1, s2])
        assert fp == {"aa": pytest.approx(-52.0), "bb": pytest.approx(-70.0)}

    def test_empty(self):
        assert average_scans([]) == {}
        assert average_scans([[], []]) == {}


class TestWifiFingerprintScanner:
    def test_scan_builds_fingerprint(self):
        provider = SimulatedWifiScanProvider(APS)
        scanner = WifiFingerprintScanner(provider, WifiConfig(sample_interval=0.0))
        seen = []
        scanner.stream.subscribe(seen.append)

        fp = asyncio.run(scanner.scan())

        assert provider.scan_count == 5
        assert fp == {"aa": -50.0, "bb": -70.0}
        assert scanner.fingerprint == fp
        assert scanner.status == ScanStatus.OK
        assert not scanner.loading
        assert seen == [fp]

    def test_sample_override(self):
        provider = SimulatedWifiScanProvider(APS)
        scanner = WifiFingerprintScanner(provider)
        asyncio.run(scanner.scan(samples=2, interval=0.0))
        assert provider.scan_count == 2

    def test_loading_while_scanning(self):
        provider = SimulatedWifiScanProvider(APS)
        scanner = WifiFingerprintScanner(provider)

        async def run():
            task = asyncio.ensure_future(scanner.scan(samples=2, interval=0.05))
            await asyncio.sleep(0.01)
            loading = scanner.loading
            await task
            return loading

        assert asyncio.run(run()) is True
        assert not scanner.loading

    def test_failure_surfaces_and_keeps_previous(self):
        provider = SimulatedWifiScanProvider(APS)
        scanner = WifiFingerprintScanner(provider)
        asyncio.run(scanner.scan(samples=1))

        provider.fail = True
        assert asyncio.run(scanner.scan(samples=3, interval=0.0)) is None
        assert scanner.status == ScanStatus.ERROR
        assert scanner.error == "Wi-Fi scan throttled"
        assert scanner.fingerprint == {"aa": -50.0, "bb": -70.0}
        assert provider.scan_count == 2

    def test_no_access_points_is_ok(self):
        scanner = WifiFingerprintScanner(SimulatedWifiScanProvider([]))
        assert asyncio.run(scanner.scan(samples=1)) == {}
        assert scanner.status == ScanStatus.OK

    def test_invalid_sample_count(self):
        scanner = WifiFingerprintScanner(SimulatedWifiScanProvider(APS))
        with pytest.raises(ValueError):
            asyncio.run(scanner.scan(samples=0))

    def test_reset(self):
        scanner = WifiFingerprintScanner(SimulatedWifiScanProvider(APS))
        asyncio.run(scanner.scan(samples=1))
        scanner.reset()
        assert scanner.fingerprint == {}
        assert scanner.status == ScanStatus.IDLE
        assert scanner.stream.latest is None
