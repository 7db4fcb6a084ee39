"""
Generate Floor Walk Dataset (Barometer + GPS + IMU + Wi-Fi).

This script generates a synthetic multi-floor walk through the deployment
building for offline evaluation of floor localization. The walk starts
outdoors, enters the footprint, and climbs and descends between floors.

Saved files:
    - walk.npz: time, true floor/altitude, pressure, GPS, position, IMU
    - wifi.json: scan times, scans, per-floor survey fingerprints
    - config.json: generation parameters and a barometer-only baseline score

Usage:
    python scripts/generate_floor_walk_dataset.py --preset baseline
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, Optional

import numpy as np

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from floorfusion.config import ConfigurationManager
from floorfusion.eval import count_floor_switches, floor_accuracy
from floorfusion.fusion import MidpointFloorEstimator
from floorfusion.sensors import pressure_to_relative_altitude
from floorfusion.sim import BuildingWalk, generate_building_walk

logger = logging.getLogger(__name__)

PRESETS: Dict[str, Dict] = {
    "baseline": {
        "pressure_noise": 0.02,
        "weather_drift": 0.1,
        "gps_altitude_noise": 2.0,
        "wifi_noise": 2.0,
    },
    "noisy": {
        "pressure_noise": 0.08,
        "weather_drift": 0.4,
        "gps_altitude_noise": 6.0,
        "wifi_noise": 5.0,
    },
    "weather": {
        "pressure_noise": 0.03,
        "weather_drift": 1.2,
        "gps_altitude_noise": 3.0,
        "wifi_noise": 3.0,
    },
}


def barometer_only_baseline(walk: BuildingWalk, plan) -> np.ndarray:
    """Floor per sample from pressure alone, anchored on the first second."""
    n_anchor = max(1, int(round(1.0 / walk.dt)))
    ground_pressure = float(np.mean(walk.pressure[:n_anchor]))
    estimator = MidpointFloorEstimator()
    altitude = np.array([
        pressure_to_relative_altitude(p, ground_pressure) for p in walk.pressure
    ])
    return np.array([estimator.estimate(h, plan) for h in altitude], dtype=int)


def save_dataset(output_dir: Path, walk: BuildingWalk, config: Dict) -> None:
    """Save dataset to disk."""
    output_dir.mkdir(parents=True, exist_ok=True)

    np.savez(
        output_dir / "walk.npz",
        t=walk.t,
        floor_index=walk.floor_index,
        altitude=walk.altitude,
        pressure=walk.pressure,
        gps_altitude=walk.gps_altitude,
        latitude=walk.latitude,
        longitude=walk.longitude,
        inside=walk.inside,
        accel=walk.accel,
        gyro=walk.gyro,
    )

    wifi = {
        "scan_times": walk.scan_times.tolist(),
        "scans": [
            [{"bssid": ap.bssid, "ssid": ap.ssid, "level": ap.level} for ap in scan]
            for scan in walk.scans
        ],
        "survey": walk.survey,
    }
    with open(output_dir / "wifi.json", "w") as f:
        json.dump(wifi, f, indent=2)

    with open(output_dir / "config.json", "w") as f:
        json.dump(config, f, indent=2)

    print(f"\n  Saved dataset to: {output_dir}")
    print(f"    Files: walk.npz, wifi.json, config.json")
    print(f"    Samples: {len(walk)}")


def generate_dataset(
    output_dir: str,
    preset: Optional[str] = None,
    config_file: Optional[str] = None,
    dwell: float = 30.0,
    stair_duration: float = 12.0,
    outdoor_duration: float = 20.0,
    pressure_noise: float = 0.03,
    weather_drift: float = 0.3,
    gps_altitude_noise: float = 3.0,
    wifi_noise: float = 3.0,
    seed: int = 42,
) -> None:
    """
    Generate a floor walk dataset.

    Args:
        output_dir: Output directory path.
        preset: Preset name (overrides the noise parameters).
        config_file: Building configuration (YAML/JSON); default building if None.
        dwell: Time per visited floor (s).
        stair_duration: Time per stair flight (s).
        outdoor_duration: Initial time outside the building (s).
        pressure_noise: Pressure noise (hPa).
        weather_drift: Weather pressure drift (hPa).
        gps_altitude_noise: GPS altitude noise (m).
        wifi_noise: RSSI noise (dB).
        seed: Random seed.
    """
    noise = {
        "pressure_noise": pressure_noise,
        "weather_drift": weather_drift,
        "gps_altitude_noise": gps_altitude_noise,
        "wifi_noise": wifi_noise,
    }
    if preset is not None:
        noise.update(PRESETS[preset])

    manager = ConfigurationManager(config_file)
    plan = manager.get_floor_plan()
    footprint = manager.get_footprint()

    print("\n" + "=" * 70)
    print(f"Generating Floor Walk Dataset: {Path(output_dir).name}")
    print("=" * 70)

    print("\nStep 1: Generating building walk...")
    walk = generate_building_walk(
        plan=plan,
        footprint=footprint,
        dwell=dwell,
        stair_duration=stair_duration,
        outdoor_duration=outdoor_duration,
        ground_altitude=manager.get_config().building.ground_altitude,
        seed=seed,
        **noise,
    )
    print(f"  Duration: {walk.t[-1]:.1f} s")
    print(f"  Floors visited: {sorted(set(plan[i].value for i in walk.floor_index))}")
    print(f"  Samples: {len(walk)}")
    print(f"  Wi-Fi scans: {len(walk.scans)}")

    print("\nStep 2: Barometer-only baseline...")
    baseline = barometer_only_baseline(walk, plan)
    accuracy = floor_accuracy(walk.floor_index, baseline, mask=walk.inside)
    switches = count_floor_switches(baseline)
    print(f"  Floor accuracy (inside): {accuracy * 100:.1f}%")
    print(f"  Floor switches: {switches} (true: {count_floor_switches(walk.floor_index)})")

    config = {
        "dataset": "floor_walk",
        "preset": preset,
        "building": footprint.name,
        "floors": plan.to_dicts(),
        "walk": walk.config,
        "num_samples": len(walk),
        "performance": {
            "barometer_only": {
                "floor_accuracy": accuracy,
                "floor_switches": switches,
            },
        },
    }
    save_dataset(Path(output_dir), walk, config)

    print("\n" + "=" * 70)
    print("Dataset generation complete!")
    print("=" * 70)


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Generate Floor Walk Dataset",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Presets:
  baseline   Clean sensors, small weather drift
  noisy      Noisy barometer, GPS and Wi-Fi
  weather    Strong weather-induced pressure drift

Examples:
  python scripts/generate_floor_walk_dataset.py --preset baseline
  python scripts/generate_floor_walk_dataset.py \\
      --config configs/queyk_building.yaml \\
      --output data/sim/floor_walk_custom \\
      --weather-drift 0.8
        """,
    )

    parser.add_argument(
        "--preset",
        type=str,
        choices=sorted(PRESETS),
        help="Use preset noise configuration (overrides noise parameters)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default="data/sim/floor_walk",
        help="Output directory (default: data/sim/floor_walk)",
    )
    parser.add_argument("--config", type=str, default=None, help="Building configuration file")

    walk_group = parser.add_argument_group("Walk Parameters")
    walk_group.add_argument("--dwell", type=float, default=30.0, help="Time per floor in seconds (default: 30.0)")
    walk_group.add_argument("--stair-duration", type=float, default=12.0, help="Time per stair flight in seconds (default: 12.0)")
    walk_group.add_argument("--outdoor-duration", type=float, default=20.0, help="Initial outdoor time in seconds (default: 20.0)")

    noise_group = parser.add_argument_group("Sensor Noise Parameters")
    noise_group.add_argument("--pressure-noise", type=float, default=0.03, help="Pressure noise in hPa (default: 0.03)")
    noise_group.add_argument("--weather-drift", type=float, default=0.3, help="Weather pressure drift in hPa (default: 0.3)")
    noise_group.add_argument("--gps-altitude-noise", type=float, default=3.0, help="GPS altitude noise in m (default: 3.0)")
    noise_group.add_argument("--wifi-noise", type=float, default=3.0, help="RSSI noise in dB (default: 3.0)")

    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    generate_dataset(
        output_dir=args.output,
        preset=args.preset,
        config_file=args.config,
        dwell=args.dwell,
        stair_duration=args.stair_duration,
        outdoor_duration=args.outdoor_duration,
        pressure_noise=args.pressure_noise,
        weather_drift=args.weather_drift,
        gps_altitude_noise=args.gps_altitude_noise,
        wifi_noise=args.wifi_noise,
        seed=args.seed,
    )


if __name__ == "__main__":
    main()
