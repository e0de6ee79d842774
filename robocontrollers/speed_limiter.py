"""Velocity, acceleration and jerk limiting for a single motion axis."""

from __future__ import annotations

import math
from typing import NamedTuple


class LimitResult(NamedTuple):
    """A limited velocity and the ratio of it to the requested one (1.0 if none)."""

    value: float
    factor: float


def _clamp(value: float, low: float, high: float) -> float:
    if value < low:
        return low
    if high < value:
        return high
    return value


def _result(requested: float, limited: float) -> LimitResult:
    return LimitResult(limited, limited / requested if requested != 0.0 else 1.0)


def _bounds(enabled: bool, kind: str, low: float, high: float) -> tuple[float, float]:
    """Validate a pair of limits; the minimum defaults to minus the maximum."""
    if enabled:
        if math.isnan(high):
            raise ValueError(f"Cannot apply {kind} limits if max_{kind} is not specified")
        if math.isnan(low):
            low = -high
    return low, high


class SpeedLimiter:
    """Clamps a commanded velocity by velocity, acceleration and jerk bounds.

    Each maximum must be given when its limit is enabled; a missing minimum
    defaults to the negated maximum.
    """

    def __init__(
        self,
        has_velocity_limits: bool = False,
        has_acceleration_limits: bool = False,
        has_jerk_limits: bool = False,
        min_velocity: float = math.nan,
        max_velocity: float = math.nan,
        min_acceleration: float = math.nan,
        max_acceleration: float = math.nan,
        min_jerk: float = math.nan,
        max_jerk: float = math.nan,
    ) -> None:
        self.has_velocity_limits = has_velocity_limits
        self.has_acceleration_limits = has_acceleration_limits
        self.has_jerk_limits = has_jerk_limits
        self.min_velocity, self.max_velocity = _bounds(
            has_velocity_limits, "velocity", min_velocity, max_velocity
        )
        self.min_acceleration, self.max_acceleration = _bounds(
            has_acceleration_limits, "acceleration", min_acceleration, max_acceleration
        )
        self.min_jerk, self.max_jerk = _bounds(has_jerk_limits, "jerk", min_jerk, max_jerk)

    def limit(self, v: float, v0: float, v1: float, dt: float) -> LimitResult:
        """Apply jerk, acceleration and velocity limits in that order.

        ``v0`` is the previous velocity, ``v1`` the one before it, ``dt`` the step.
        """
        limited = self.limit_jerk(v, v0, v1, dt).value
        limited = self.limit_acceleration(limited, v0, dt).value
        limited = self.limit_velocity(limited).value
        return _result(v, limited)

    def limit_velocity(self, v: float) -> LimitResult:
        """Clamp the velocity itself."""
        limited = v
        if self.has_velocity_limits:
            limited = _clamp(v, self.min_velocity, self.max_velocity)
        return _result(v, limited)

    def limit_acceleration(self, v: float, v0: float, dt: float) -> LimitResult:
        """Clamp the change from the previous velocity ``v0`` over ``dt``."""
        limited = v
        if self.has_acceleration_limits:
            dv = _clamp(v - v0, self.min_acceleration * dt, self.max_acceleration * dt)
            limited = v0 + dv
        return _result(v, limited)

    def limit_jerk(self, v: float, v0: float, v1: float, dt: float) -> LimitResult:
        """Clamp the change in velocity change over the last two steps."""
        limited = v
        if self.has_jerk_limits:
            dv = v - v0
            dv0 = v0 - v1
            dt2 = 2.0 * dt * dt
            da = _clamp(dv - dv0, self.min_jerk * dt2, self.max_jerk * dt2)
            limited = v0 + dv0 + da
        return _result(v, limited)