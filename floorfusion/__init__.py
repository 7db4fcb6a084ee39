"""Indoor floor localization by multi-sensor fusion.

This package estimates which floor of a building a user is on:
- sensors: GPS altitude, barometric altitude and inertial transition sources
- fingerprinting: Wi-Fi fingerprint scanning, matching and storage
- fusion: Altitude estimators, the fusion engine and the dynamic session
- utils: Geofencing and floor-plan geometry
- sim / eval: Simulated providers, synthetic walks and metrics
"""

__version__ = "0.1.0"
