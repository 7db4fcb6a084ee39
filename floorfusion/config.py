"""
Configuration System - Centralized configuration for floor localization

All empirically tuned thresholds (lapse constant, recalibration bounds,
IMU classification thresholds, Wi-Fi match threshold, GPS agreement bound)
live here as dataclass defaults so they can be retuned per deployment from a
YAML or JSON file without touching the algorithms.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import yaml

from floorfusion.floors import AltitudeReference, Floor, FloorPlan, default_floor_plan
from floorfusion.utils.geometry import BuildingFootprint, Coordinate

logger = logging.getLogger(__name__)


@dataclass
class BarometerConfig:
    """Barometric altitude estimator parameters"""
    update_interval: float = 1.0  # s
    lapse_m_per_hpa: float = 8.5
    auto_anchor: bool = True
    stable_samples: int = 3
    stable_tolerance_hpa: float = 0.1
    recalibration_interval: float = 30.0  # s
    outdoor_min_offset: float = 3.0  # m
    outdoor_max_offset: float = 20.0  # m
    indoor_ground_min_offset: float = 5.0  # m
    indoor_ground_gps_tolerance: float = 15.0  # m


@dataclass
class GpsConfig:
    """GPS altitude tracker parameters"""
    time_interval: float = 1.0  # s
    distance_interval: float = 0.0  # m
    warmup_attempts: int = 6
    warmup_interval: float = 2.0  # s
    restart_delay: float = 0.2  # s
    poll_interval: float = 0.25  # s
    default_attempts: int = 3
    default_wait_for_altitude: float = 7.0  # s
    delay_between_attempts: float = 0.3  # s
    online_attempts: int = 1
    offline_attempts: int = 3
    online_wait: float = 2.0  # s
    offline_wait: float = 8.0  # s
    resume_online_wait: float = 3.0  # s
    resume_offline_wait: float = 10.0  # s
    awaiting_timeout: float = 2.0  # s
    resume_awaiting_timeout: float = 6.0  # s

    def attempt_policy(self, offline: bool, resuming: bool = False) -> Tuple[int, float]:
        """(attempts, wait per attempt); GPS-only fixes take longer offline."""
        if offline:
            wait = self.resume_offline_wait if resuming else self.offline_wait
            return self.offline_attempts, wait
        wait = self.resume_online_wait if resuming else self.online_wait
        return self.online_attempts, wait


@dataclass
class MotionConfig:
    """Inertial floor-transition detector parameters"""
    sample_interval: float = 0.1  # s (10 Hz)
    window_size: int = 10
    accel_variance_threshold: float = 2.0
    rotation_threshold: float = 0.5  # rad/s
    up_threshold: float = 12.0  # m/s^2
    down_threshold: float = 8.0  # m/s^2
    debounce_interval: float = 2.0  # s
    detection_confidence: float = 0.8


@dataclass
class WifiConfig:
    """Wi-Fi fingerprint scan and match parameters"""
    samples: int = 5
    sample_interval: float = 1.0  # s
    missing_rssi: float = -100.0  # dBm
    match_threshold: float = 20.0
    periodic_samples: int = 3
    periodic_interval: float = 10.0  # s


@dataclass
class FusionConfig:
    """Floor fusion engine parameters"""
    altitude_strategy: str = "auto"  # 'auto', 'nearest', 'midpoint'
    gps_agreement_bound: float = 5.0  # m
    lower_snap: float = 1.5  # m
    upper_snap: float = 1.0  # m
    hysteresis_margin: float = 1.0  # m
    initial_floor: Optional[str] = None

    def __post_init__(self):
        if self.altitude_strategy not in ("auto", "nearest", "midpoint"):
            raise ValueError(
                f"altitude_strategy must be 'auto', 'nearest' or 'midpoint', "
                f"got '{self.altitude_strategy}'"
            )


@dataclass
class BuildingConfig:
    """Static deployment description: footprint and floors"""
    name: str = "School Building"
    ground_altitude: float = 0.0  # m, GPS altitude of the ground floor
    altitude_reference: str = "relative"
    ground_value: str = "ground"
    footprint: List[List[float]] = field(default_factory=lambda: [
        [14.767674, 121.07969],
        [14.768133, 121.07969],
        [14.768133, 121.079834],
        [14.767674, 121.079834],
    ])
    floors: Optional[List[Dict[str, Any]]] = None


@dataclass
class FloorFusionConfig:
    """Main configuration"""
    barometer: BarometerConfig = None
    gps: GpsConfig = None
    motion: MotionConfig = None
    wifi: WifiConfig = None
    fusion: FusionConfig = None
    building: BuildingConfig = None
    storage_path: Optional[str] = None

    def __post_init__(self):
        """Initialize sub-configurations if not provided"""
        if self.barometer is None:
            self.barometer = BarometerConfig()
        if self.gps is None:
            self.gps = GpsConfig()
        if self.motion is None:
            self.motion = MotionConfig()
        if self.wifi is None:
            self.wifi = WifiConfig()
        if self.fusion is None:
            self.fusion = FusionConfig()
        if self.building is None:
            self.building = BuildingConfig()


_SECTIONS = {
    'barometer': BarometerConfig,
    'gps': GpsConfig,
    'motion': MotionConfig,
    'wifi': WifiConfig,
    'fusion': FusionConfig,
    'building': BuildingConfig,
}


class ConfigurationManager:
    """
    Centralized configuration management system
    """

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialize configuration manager

        Args:
            config_file: Path to configuration file (YAML or JSON)
        """
        self.config_file = config_file
        self.config = FloorFusionConfig()

        if config_file and os.path.exists(config_file):
            self.load_from_file(config_file)
        elif config_file:
            logger.warning("Configuration file %s not found; using defaults", config_file)

    def load_from_file(self, config_file: str) -> FloorFusionConfig:
        """
        Load configuration from YAML or JSON file

        Args:
            config_file: Path to configuration file

        Returns:
            Loaded FloorFusionConfig object
        """
        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                if config_file.endswith(('.yaml', '.yml')):
                    config_dict = yaml.safe_load(f) or {}
                else:
                    config_dict = json.load(f)

            self.config = self._dict_to_config(config_dict)
            logger.info("Configuration loaded from %s", config_file)

        except (OSError, ValueError, TypeError, yaml.YAMLError) as e:
            logger.error("Failed to load configuration from %s: %s", config_file, e)
            logger.info("Using default configuration")
            self.config = FloorFusionConfig()

        return self.config

    def get_config(self) -> FloorFusionConfig:
        """Get current configuration"""
        return self.config

    def save_to_file(self, config_file: str) -> None:
        data = asdict(self.config)
        with open(config_file, 'w', encoding='utf-8') as f:
            if config_file.endswith(('.yaml', '.yml')):
                yaml.safe_dump(data, f, sort_keys=False)
            else:
                json.dump(data, f, indent=2)

    def _dict_to_config(self, config_dict: Dict[str, Any]) -> FloorFusionConfig:
        """Convert dictionary to FloorFusionConfig object"""
        if not isinstance(config_dict, dict):
            raise TypeError(f"Configuration root must be a mapping, got {type(config_dict).__name__}")

        sections = {
            name: cls(**(config_dict.get(name) or {}))
            for name, cls in _SECTIONS.items()
        }
        extra = {k: v for k, v in config_dict.items() if k not in _SECTIONS}
        return FloorFusionConfig(**sections, **extra)

    def get_floor_plan(self) -> FloorPlan:
        """Floor plan from the building section, or the built-in default."""
        building = self.config.building
        if not building.floors:
            return default_floor_plan()
        floors = [Floor.from_dict(entry) for entry in building.floors]
        return FloorPlan(
            floors,
            AltitudeReference(building.altitude_reference),
            ground_value=building.ground_value,
        )

    def get_footprint(self) -> BuildingFootprint:
        building = self.config.building
        return BuildingFootprint(
            name=building.name,
            corners=[Coordinate(lat, lon) for lat, lon in building.footprint],
        )
