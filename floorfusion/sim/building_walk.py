"""
Synthetic multi-floor building walk.

Generates time-aligned ground truth and noisy sensor streams for one user
walking between floors of a ``FloorPlan``:

    - floor schedule: dwell on each floor, climb/descend stairs in between
    - pressure (hPa): linear barometric model + weather drift + noise
    - GPS altitude (m, absolute) and position: 1 Hz, noisy; the walk starts
      outdoors and enters the building footprint
    - motion (10 Hz): acceleration magnitude pattern of level walking or
      stairs, gyroscope rotation on stair flights
    - Wi-Fi scans: per-floor access points with RSSI falling off per floor
      of separation

Model constants:
    - Pressure: p = p_ground - h / 8.5  (hPa, h in meters above ground)
    - RSSI: tx_power - floor_attenuation * |f - f_ap|, dropped below -90 dBm

The generator is deterministic for a given seed.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from floorfusion.floors import Floor, FloorPlan, WifiFingerprint, default_floor_plan
from floorfusion.sensors.barometer import LAPSE_M_PER_HPA
from floorfusion.sensors.types import AccessPoint, LocationFix, MotionSample, PressureReading
from floorfusion.utils.geometry import BuildingFootprint, Coordinate

GRAVITY = 9.81
WIFI_FLOOR_RSSI = -90.0  # dBm, weaker access points are not reported


@dataclass
class BuildingWalk:
    """
    Arrays of one synthetic walk, all sampled on the motion time base ``t``.

    Attributes:
        t: Time [N] seconds.
        floor_index: True floor index into the plan [N].
        altitude: True altitude above the ground floor [N] meters.
        pressure: Measured pressure [N] hPa.
        gps_altitude: Measured absolute GPS altitude [N] m (NaN between fixes).
        latitude, longitude: Measured position [N] degrees (NaN between fixes).
        inside: True geofence state [N].
        accel: Accelerometer including gravity [N, 3] m/s².
        gyro: Gyroscope [N, 3] rad/s.
        scan_times: Times of Wi-Fi scans [K] seconds.
        scans: Access point lists, one per scan time.
        survey: Noise-free fingerprint per floor value.
        ground_altitude: Absolute GPS altitude of the ground floor, m.
        dt: Motion sample period, s.
    """

    t: np.ndarray
    floor_index: np.ndarray
    altitude: np.ndarray
    pressure: np.ndarray
    gps_altitude: np.ndarray
    latitude: np.ndarray
    longitude: np.ndarray
    inside: np.ndarray
    accel: np.ndarray
    gyro: np.ndarray
    scan_times: np.ndarray
    scans: List[List[AccessPoint]]
    survey: Dict[str, WifiFingerprint]
    ground_altitude: float
    dt: float
    config: Dict = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.t)

    def surveyed_plan(self, plan: FloorPlan) -> FloorPlan:
        """``plan`` with the survey fingerprints attached."""
        stored = [
            Floor(id=f.id, value=f.value, label=f.label, altitude=f.altitude,
                  wifi_fingerprint=self.survey.get(f.value, {}))
            for f in plan.floors
        ]
        return plan.with_fingerprints(stored)

    def location_fix(self, i: int) -> Optional[LocationFix]:
        if np.isnan(self.gps_altitude[i]):
            return None
        return LocationFix(
            latitude=float(self.latitude[i]),
            longitude=float(self.longitude[i]),
            altitude=float(self.gps_altitude[i]),
            altitude_accuracy=float(self.config.get("gps_altitude_noise", 0.0)),
            accuracy=5.0,
            timestamp=float(self.t[i]),
        )

    def pressure_reading(self, i: int) -> PressureReading:
        return PressureReading(float(self.pressure[i]), float(self.t[i]))

    def motion_sample(self, i: int) -> MotionSample:
        return MotionSample(self.accel[i], self.gyro[i], float(self.t[i]))


def build_schedule(
    plan: FloorPlan,
    visits: Sequence[str],
    dwell: float,
    stair_duration: float,
) -> List[Tuple[float, float, int, int]]:
    """
    Phases of the walk as (start, end, from_index, to_index).

    A dwell phase has from_index == to_index. Stair phases move one floor
    at a time, so a visit two floors up yields two consecutive flights.
    """
    indices = []
    for value in visits:
        index = plan.index_of(value)
        if index is None:
            raise ValueError(f"Unknown floor '{value}' in schedule")
        indices.append(index)
    if not indices:
        raise ValueError("schedule must visit at least one floor")

    phases = []
    t0 = 0.0
    current = indices[0]
    phases.append((t0, t0 + dwell, current, current))
    t0 += dwell
    for target in indices[1:]:
        step = 1 if target > current else -1
        while current != target:
            phases.append((t0, t0 + stair_duration, current, current + step))
            t0 += stair_duration
            current += step
        phases.append((t0, t0 + dwell, current, current))
        t0 += dwell
    return phases


def survey_fingerprints(
    plan: FloorPlan,
    n_access_points: int = 8,
    tx_power: float = -45.0,
    floor_attenuation: float = 18.0,
) -> Tuple[List[Tuple[str, int]], Dict[str, WifiFingerprint]]:
    """
    Access point layout and the noise-free fingerprint of every floor.

    Access points are assigned to floors round-robin.

    Returns:
        Tuple of (access_points, survey):
            - access_points: [(bssid, floor_index)]
            - survey: floor value -> {bssid: rssi}
    """
    n_floors = len(plan)
    access_points = [
        (f"02:00:00:00:{k // 256:02x}:{k % 256:02x}", k % n_floors)
        for k in range(n_access_points)
    ]
    survey: Dict[str, WifiFingerprint] = {}
    for i, floor in enumerate(plan.floors):
        fingerprint = {}
        for bssid, ap_floor in access_points:
            rssi = tx_power - floor_attenuation * abs(i - ap_floor)
            if rssi >= WIFI_FLOOR_RSSI:
                fingerprint[bssid] = rssi
        survey[floor.value] = fingerprint
    return access_points, survey


def generate_building_walk(
    plan: Optional[FloorPlan] = None,
    visits: Sequence[str] = ("ground", "first", "second", "first", "ground"),
    footprint: Optional[BuildingFootprint] = None,
    dwell: float = 30.0,
    stair_duration: float = 12.0,
    outdoor_duration: float = 20.0,
    dt: float = 0.1,
    gps_interval: float = 1.0,
    scan_interval: float = 10.0,
    ground_pressure: float = 1013.25,
    pressure_noise: float = 0.03,
    weather_drift: float = 0.3,
    ground_altitude: float = 50.0,
    gps_altitude_noise: float = 3.0,
    n_access_points: int = 8,
    wifi_noise: float = 3.0,
    seed: int = 42,
) -> BuildingWalk:
    """
    Generate a synthetic multi-floor walk.

    Args:
        plan: Floor plan (relative altitudes used as true heights).
              Default: ``default_floor_plan()``.
        visits: Floor values visited in order.
        footprint: Building outline. Default: the deployment rectangle.
        dwell: Time spent walking on each visited floor, s.
        stair_duration: Time per stair flight, s.
        outdoor_duration: Initial time spent outside the footprint on the
                          first floor of the schedule, s.
        dt: Motion sample period, s (0.1 = 10 Hz).
        gps_interval: Period of GPS fixes, s.
        scan_interval: Period of Wi-Fi scans, s.
        ground_pressure: Pressure at the ground floor, hPa.
        pressure_noise: Pressure noise std, hPa.
        weather_drift: Amplitude of slow weather drift, hPa.
        ground_altitude: Absolute GPS altitude of the ground floor, m.
        gps_altitude_noise: GPS altitude noise std, m.
        n_access_points: Number of simulated access points.
        wifi_noise: RSSI noise std, dB.
        seed: Random seed.

    Returns:
        ``BuildingWalk`` with ground truth and measurements.
    """
    if plan is None:
        plan = default_floor_plan()
    if footprint is None:
        footprint = BuildingFootprint("School Building", [
            Coordinate(14.767674, 121.07969),
            Coordinate(14.768133, 121.07969),
            Coordinate(14.768133, 121.079834),
            Coordinate(14.767674, 121.079834),
        ])
    for floor in plan.floors:
        if floor.altitude is None:
            raise ValueError(f"Floor '{floor.value}' has no altitude to simulate")

    rng = np.random.default_rng(seed)
    phases = build_schedule(plan, visits, dwell, stair_duration)
    if outdoor_duration > 0:
        first = phases[0][2]
        phases = [(0.0, outdoor_duration, first, first)] + [
            (start + outdoor_duration, end + outdoor_duration, a, b) for start, end, a, b in phases
        ]
    duration = phases[-1][1]

    t = np.arange(0.0, duration, dt)
    N = len(t)
    heights = np.array([f.altitude for f in plan.floors], dtype=float)
    ground_height = heights[plan.ground_index]

    floor_index = np.zeros(N, dtype=int)
    altitude = np.zeros(N)
    accel_mag = np.zeros(N)
    rotation = np.zeros(N)

    stride = 2 * np.pi * 2.0 * t  # 2 Hz step cadence
    phase_id = np.searchsorted([p[1] for p in phases], t, side="right")
    phase_id = np.minimum(phase_id, len(phases) - 1)

    for i in range(N):
        start, end, a, b = phases[phase_id[i]]
        progress = (t[i] - start) / (end - start)
        if a == b:
            floor_index[i] = a
            altitude[i] = heights[a] - ground_height
            accel_mag[i] = GRAVITY + 1.0 * np.sin(stride[i])
            rotation[i] = 0.2
        else:
            # Floor label switches at mid-flight
            floor_index[i] = a if progress < 0.5 else b
            altitude[i] = heights[a] + progress * (heights[b] - heights[a]) - ground_height
            base = 13.0 if b > a else 6.5
            accel_mag[i] = base + 2.5 * np.sin(stride[i])
            rotation[i] = 0.9

    accel = np.zeros((N, 3))
    accel[:, :2] = rng.normal(0, 0.2, (N, 2))
    accel[:, 2] = accel_mag + rng.normal(0, 0.3, N)
    gyro = np.zeros((N, 3))
    gyro[:, :2] = rng.normal(0, 0.05, (N, 2))
    gyro[:, 2] = rotation + rng.normal(0, 0.05, N)

    # Barometer
    drift = weather_drift * np.sin(2 * np.pi * t / max(duration * 2.0, 1.0))
    pressure = (
        ground_pressure - altitude / LAPSE_M_PER_HPA
        + drift
        + rng.normal(0, pressure_noise, N)
    )

    # GPS fixes; outdoor phase north of the footprint
    bounds = footprint.bounds
    center = footprint.centroid
    lat_span = bounds.max_lat - bounds.min_lat
    lon_span = bounds.max_lon - bounds.min_lon
    outdoors = t < outdoor_duration
    inside = ~outdoors

    gps_step = max(1, int(round(gps_interval / dt)))
    has_fix = np.zeros(N, dtype=bool)
    has_fix[::gps_step] = True

    gps_altitude = np.full(N, np.nan)
    latitude = np.full(N, np.nan)
    longitude = np.full(N, np.nan)
    n_fix = int(has_fix.sum())
    gps_altitude[has_fix] = ground_altitude + altitude[has_fix] + rng.normal(0, gps_altitude_noise, n_fix)
    latitude[has_fix] = center.latitude + rng.uniform(-0.2, 0.2, n_fix) * lat_span
    longitude[has_fix] = center.longitude + rng.uniform(-0.2, 0.2, n_fix) * lon_span
    out_fix = has_fix & outdoors
    latitude[out_fix] = bounds.max_lat + 2.0 * lat_span

    # Wi-Fi scans
    access_points, survey = survey_fingerprints(plan, n_access_points)
    scan_times = np.arange(0.0, duration, scan_interval)
    scans: List[List[AccessPoint]] = []
    for ts in scan_times:
        i = min(int(round(ts / dt)), N - 1)
        fingerprint = survey[plan[floor_index[i]].value]
        wall_loss = 0.0 if inside[i] else 20.0
        scan = []
        for bssid, rssi in fingerprint.items():
            level = rssi - wall_loss + rng.normal(0, wifi_noise)
            if level >= WIFI_FLOOR_RSSI:
                scan.append(AccessPoint(bssid, float(level), ssid="QUEYK"))
        scans.append(scan)

    config = {
        "visits": list(visits),
        "dwell": dwell,
        "stair_duration": stair_duration,
        "outdoor_duration": outdoor_duration,
        "dt": dt,
        "gps_interval": gps_interval,
        "scan_interval": scan_interval,
        "ground_pressure": ground_pressure,
        "pressure_noise": pressure_noise,
        "weather_drift": weather_drift,
        "ground_altitude": ground_altitude,
        "gps_altitude_noise": gps_altitude_noise,
        "n_access_points": n_access_points,
        "wifi_noise": wifi_noise,
        "seed": seed,
    }

    return BuildingWalk(
        t=t,
        floor_index=floor_index,
        altitude=altitude,
        pressure=pressure,
        gps_altitude=gps_altitude,
        latitude=latitude,
        longitude=longitude,
        inside=inside,
        accel=accel,
        gyro=gyro,
        scan_times=scan_times,
        scans=scans,
        survey=survey,
        ground_altitude=ground_altitude,
        dt=dt,
        config=config,
    )
