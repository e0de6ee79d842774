"""Differential-drive odometry integrated from wheel feedback or commands."""

from __future__ import annotations

import math
from collections import deque


def _divide(numerator: float, denominator: float) -> float:
    """Floating division that yields inf or nan on a zero denominator."""
    try:
        return numerator / denominator
    except ZeroDivisionError:
        if numerator == 0.0 or math.isnan(numerator):
            return math.nan
        return math.copysign(math.inf, numerator) * math.copysign(1.0, denominator)


class RollingMeanAccumulator:
    """Mean of the most recent ``window_size`` values."""

    def __init__(self, window_size: int) -> None:
        if window_size < 1:
            raise ValueError("rolling window size must be at least 1")
        self._values: deque[float] = deque(maxlen=window_size)
        self._sum = 0.0

    @property
    def window_size(self) -> int:
        return self._values.maxlen or 0

    def __len__(self) -> int:
        return len(self._values)

    def accumulate(self, value: float) -> None:
        """Add a value, dropping the oldest once the window is full."""
        if len(self._values) == self._values.maxlen:
            self._sum -= self._values[0]
        self._values.append(value)
        self._sum += value

    @property
    def rolling_mean(self) -> float:
        if not self._values:
            raise ValueError("no values have been accumulated")
        return self._sum / len(self._values)


class Odometry:
    """Pose and velocity estimate of a differential-drive base.

    Times are in seconds, distances in metres, angles in radians.
    """

    def __init__(self, velocity_rolling_window_size: int = 10) -> None:
        self._timestamp = 0.0
        self._x = 0.0
        self._y = 0.0
        self._heading = 0.0
        self._linear = 0.0
        self._angular = 0.0
        self._wheel_separation = 0.0
        self._left_wheel_radius = 0.0
        self._right_wheel_radius = 0.0
        self._left_wheel_old_pos = 0.0
        self._right_wheel_old_pos = 0.0
        self._window_size = velocity_rolling_window_size
        self._linear_accumulator = RollingMeanAccumulator(velocity_rolling_window_size)
        self._angular_accumulator = RollingMeanAccumulator(velocity_rolling_window_size)

    @property
    def x(self) -> float:
        return self._x

    @property
    def y(self) -> float:
        return self._y

    @property
    def heading(self) -> float:
        return self._heading

    @property
    def linear(self) -> float:
        return self._linear

    @property
    def angular(self) -> float:
        return self._angular

    @property
    def timestamp(self) -> float:
        return self._timestamp

    def init(self, time: float) -> None:
        """Reset the velocity estimates and start timing at ``time``."""
        self._reset_accumulators()
        self._timestamp = time

    def update(self, left_pos: float, right_pos: float, time: float) -> bool:
        """Integrate from wheel angles; False if the interval is too short."""
        dt = time - self._timestamp
        if dt < 0.0001:
            return False

        left_cur = left_pos * self._left_wheel_radius
        right_cur = right_pos * self._right_wheel_radius

        left_delta = left_cur - self._left_wheel_old_pos
        right_delta = right_cur - self._right_wheel_old_pos

        self._left_wheel_old_pos = left_cur
        self._right_wheel_old_pos = right_cur

        self.update_from_velocity(left_delta, right_delta, time)
        return True

    def update_from_velocity(self, left_vel: float, right_vel: float, time: float) -> bool:
        """Integrate wheel travel since the last update and refresh velocities."""
        dt = time - self._timestamp

        linear = (left_vel + right_vel) * 0.5
        angular = _divide(right_vel - left_vel, self._wheel_separation)

        self._integrate_exact(linear, angular)
        self._timestamp = time

        self._linear_accumulator.accumulate(_divide(linear, dt))
        self._angular_accumulator.accumulate(_divide(angular, dt))

        self._linear = self._linear_accumulator.rolling_mean
        self._angular = self._angular_accumulator.rolling_mean
        return True

    def update_open_loop(self, linear: float, angular: float, time: float) -> None:
        """Integrate the commanded velocities over the time since the last update."""
        self._linear = linear
        self._angular = angular
        dt = time - self._timestamp
        self._timestamp = time
        self._integrate_exact(linear * dt, angular * dt)

    def reset_odometry(self) -> None:
        """Put the pose back at the origin."""
        self._x = 0.0
        self._y = 0.0
        self._heading = 0.0

    def set_wheel_params(
        self, wheel_separation: float, left_wheel_radius: float, right_wheel_radius: float
    ) -> None:
        self._wheel_separation = wheel_separation
        self._left_wheel_radius = left_wheel_radius
        self._right_wheel_radius = right_wheel_radius

    def set_velocity_rolling_window_size(self, velocity_rolling_window_size: int) -> None:
        """Change the averaging window; discards the accumulated velocities."""
        self._window_size = velocity_rolling_window_size
        self._reset_accumulators()

    def _integrate_runge_kutta2(self, linear: float, angular: float) -> None:
        direction = self._heading + angular * 0.5
        self._x += linear * math.cos(direction)
        self._y += linear * math.sin(direction)
        self._heading += angular

    def _integrate_exact(self, linear: float, angular: float) -> None:
        if abs(angular) < 1e-6:
            self._integrate_runge_kutta2(linear, angular)
            return
        heading_old = self._heading
        r = linear / angular
        self._heading += angular
        self._x += r * (math.sin(self._heading) - math.sin(heading_old))
        self._y += -r * (math.cos(self._heading) - math.cos(heading_old))

    def _reset_accumulators(self) -> None:
        self._linear_accumulator = RollingMeanAccumulator(self._window_size)
        self._angular_accumulator = RollingMeanAccumulator(self._window_size)