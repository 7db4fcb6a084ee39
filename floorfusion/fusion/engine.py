"""
Floor fusion engine.

Combines the latest value of every signal source into one floor index with a
fixed priority cascade, evaluated once per tick:

    0. geofence      inside_building is False -> state left unchanged
    1. inertial      index += imu_delta                     (if delta != 0)
    2. Wi-Fi         index  = index of matched floor        (if a match)
    3. altitude      index  = estimator(altitude)           (if it decides)
    4. clamp         index  = clamp(index, 0, n_floors - 1)

Later rules override earlier ones, so an altitude that agrees with a floor
wins over Wi-Fi, which wins over the inertial delta. A missing signal never
moves the floor.

Which altitude feeds rule 3 depends on the plan's convention: GPS altitude
for ``AltitudeReference.ABSOLUTE`` plans, altitude above ground for
``AltitudeReference.RELATIVE`` plans. Above ground means the barometric
altitude, or ``gps_altitude - ground_altitude`` while the barometer has no
reading (missing, unavailable or not yet anchored).
"""

import logging
from typing import Optional

from floorfusion.config import FusionConfig
from floorfusion.floors import AltitudeReference, Floor, FloorPlan
from floorfusion.fusion.estimators import FloorEstimator, select_estimator
from floorfusion.fusion.types import FloorEstimate, FloorSource, FusionState, SignalSnapshot

logger = logging.getLogger(__name__)


class FloorFusionEngine:
    """
    Priority-cascade floor estimator holding the authoritative floor index.

    Args:
        plan: Floor plan (ordered floors and altitude convention).
        config: Fusion parameters.
        multi_signal: Whether Wi-Fi or inertial signals also feed the engine.
                      Selects the altitude estimator when the strategy is
                      'auto'. Default: True if any floor has a fingerprint.
        ground_altitude: GPS altitude of the ground floor, used to turn GPS
                         altitude into height above ground for relative plans.

    Example:
        >>> engine = FloorFusionEngine(plan)
        >>> est = engine.tick(SignalSnapshot(barometric_altitude=4.2))
        >>> est.floor.value, est.source
        ('first', <FloorSource.ALTITUDE: 'altitude'>)
    """

    def __init__(
        self,
        plan: FloorPlan,
        config: Optional[FusionConfig] = None,
        multi_signal: Optional[bool] = None,
        ground_altitude: float = 0.0,
    ):
        self.config = config or FusionConfig()
        self.plan = plan
        self.ground_altitude = ground_altitude
        if multi_signal is None:
            multi_signal = any(f.has_fingerprint for f in plan.floors)
        self.multi_signal = multi_signal
        self.estimator: FloorEstimator = self._build_estimator()
        self.state = FusionState(current_index=self.initial_index)
        logger.debug(
            "Fusion engine: %d floors, %s altitudes, %s estimator",
            len(plan), plan.altitude_reference.value, self.estimator.name,
        )

    @property
    def initial_index(self) -> int:
        if self.config.initial_floor is not None:
            index = self.plan.index_of(self.config.initial_floor)
            if index is None:
                raise ValueError(f"Unknown initial floor '{self.config.initial_floor}'")
            return index
        return self.plan.ground_index

    @property
    def current_index(self) -> int:
        return self.state.current_index

    @property
    def current_floor(self) -> Floor:
        return self.plan[self.state.current_index]

    @property
    def on_ground_floor(self) -> bool:
        return self.state.current_index == self.plan.ground_index

    def _build_estimator(self) -> FloorEstimator:
        return select_estimator(
            self.config.altitude_strategy,
            multi_signal=self.multi_signal,
            gps_agreement_bound=self.config.gps_agreement_bound,
            lower_snap=self.config.lower_snap,
            upper_snap=self.config.upper_snap,
            hysteresis_margin=self.config.hysteresis_margin,
        )

    def set_plan(self, plan: FloorPlan, multi_signal: Optional[bool] = None) -> None:
        """
        Swap in a new plan (e.g. with stored fingerprints merged), keeping the floor by value.

        Args:
            plan: Replacement plan.
            multi_signal: New signal availability. Default: unchanged, or True
                          once the new plan has a fingerprint. The estimator
                          is re-selected when this changes.
        """
        current_value = self.current_floor.value
        self.plan = plan
        index = plan.index_of(current_value)
        self.state.current_index = plan.clamp_index(
            index if index is not None else self.state.current_index
        )

        if multi_signal is None:
            multi_signal = self.multi_signal or any(f.has_fingerprint for f in plan.floors)
        if multi_signal != self.multi_signal:
            self.multi_signal = multi_signal
            self.estimator = self._build_estimator()
            logger.debug("Altitude estimator switched to %s", self.estimator.name)

    def reset(self) -> None:
        self.state.reset(self.initial_index)

    def altitude_for(self, snapshot: SignalSnapshot) -> Optional[float]:
        """Altitude in the plan's convention, or None when no source has one."""
        if self.plan.altitude_reference == AltitudeReference.ABSOLUTE:
            return snapshot.gps_altitude
        if snapshot.barometric_altitude is not None:
            return snapshot.barometric_altitude
        if snapshot.gps_altitude is not None:
            return snapshot.gps_altitude - self.ground_altitude
        return None

    def tick(self, snapshot: SignalSnapshot) -> FloorEstimate:
        """
        Run the cascade once.

        Never raises for signal content; an index outside the plan is clamped.

        Returns:
            ``FloorEstimate`` with the new index and the rule that decided it.
        """
        state = self.state
        state.ticks += 1
        state.last_imu_delta = snapshot.imu_delta
        state.last_wifi_match = snapshot.wifi_match
        state.last_gps_altitude = snapshot.gps_altitude
        state.last_barometric_altitude = snapshot.barometric_altitude
        state.inside_building = snapshot.inside_building

        previous = state.current_index

        if snapshot.inside_building is False:
            return FloorEstimate(previous, self.plan[previous], FloorSource.UNCHANGED, False)

        index = previous
        source = FloorSource.UNCHANGED

        if snapshot.imu_delta != 0:
            index += snapshot.imu_delta
            source = FloorSource.IMU

        if snapshot.wifi_match is not None:
            match_index = self.plan.index_of(snapshot.wifi_match.floor.value)
            if match_index is not None:
                index = match_index
                source = FloorSource.WIFI

        altitude = self.altitude_for(snapshot)
        if altitude is not None:
            altitude_index = self.estimator.estimate(altitude, self.plan)
            if altitude_index is not None:
                index = altitude_index
                source = FloorSource.ALTITUDE

        index = self.plan.clamp_index(index)
        changed = index != previous
        state.current_index = index
        if source != FloorSource.UNCHANGED:
            state.last_source = source

        if changed:
            logger.debug(
                "Floor %s -> %s (%s)",
                self.plan[previous].value, self.plan[index].value, source.value,
            )
        return FloorEstimate(index, self.plan[index], source, changed)

    def _select(self, index: int) -> FloorEstimate:
        previous = self.state.current_index
        self.state.current_index = index
        self.state.last_source = FloorSource.MANUAL
        return FloorEstimate(index, self.plan[index], FloorSource.MANUAL, index != previous)

    def select_floor(self, value: str) -> FloorEstimate:
        """Set the floor manually by ``value`` (static mode).

        Raises:
            ValueError: If no floor has ``value``.
        """
        index = self.plan.index_of(value)
        if index is None:
            raise ValueError(f"Unknown floor '{value}'")
        return self._select(index)

    def select_floor_by_id(self, floor_id: str) -> Optional[FloorEstimate]:
        """Set the floor from a scanned QR code; None if the id is unknown."""
        floor = self.plan.find_by_id(floor_id)
        if floor is None:
            logger.warning("QR code '%s' does not match any floor", floor_id)
            return None
        return self._select(self.plan.index_of(floor.value))
