"""Messages, parameters and configuration helpers for the differential-drive controller."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from robocontrollers.controller_base import ControllerInterface
from robocontrollers.force_torque import Vector3
from robocontrollers.speed_limiter import SpeedLimiter

COVARIANCE_DIMENSIONS = 6
LIMITED_AXES = ("linear.x", "angular.z")


def _zeros(count: int) -> list[float]:
    return [0.0] * count


@dataclass
class Twist:
    """Linear and angular velocity of a body."""

    linear: Vector3 = field(default_factory=Vector3)
    angular: Vector3 = field(default_factory=Vector3)


@dataclass
class TwistStamped:
    """A twist with the time it refers to; a zero stamp means none was set."""

    stamp: float = 0.0
    frame_id: str = ""
    twist: Twist = field(default_factory=Twist)


@dataclass
class Quaternion:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    w: float = 1.0


def quaternion_from_yaw(yaw: float) -> Quaternion:
    """Orientation of a planar body rotated by ``yaw`` radians about z."""
    half = yaw * 0.5
    return Quaternion(0.0, 0.0, math.sin(half), math.cos(half))


@dataclass
class OdometryMessage:
    """Pose and velocity estimate with row-major 6x6 covariances."""

    stamp: float = 0.0
    frame_id: str = ""
    child_frame_id: str = ""
    position: Vector3 = field(default_factory=Vector3)
    orientation: Quaternion = field(default_factory=Quaternion)
    twist: Twist = field(default_factory=Twist)
    pose_covariance: list[float] = field(
        default_factory=lambda: _zeros(COVARIANCE_DIMENSIONS * COVARIANCE_DIMENSIONS)
    )
    twist_covariance: list[float] = field(
        default_factory=lambda: _zeros(COVARIANCE_DIMENSIONS * COVARIANCE_DIMENSIONS)
    )


@dataclass
class TransformStamped:
    """Transform from ``frame_id`` to ``child_frame_id`` at ``stamp``."""

    stamp: float = 0.0
    frame_id: str = ""
    child_frame_id: str = ""
    translation: Vector3 = field(default_factory=Vector3)
    rotation: Quaternion = field(default_factory=Quaternion)


@dataclass
class WheelParams:
    """Wheel geometry; separation is measured between wheel mid-planes."""

    wheels_per_side: int = 0
    separation: float = 0.0
    radius: float = 0.0
    separation_multiplier: float = 1.0
    left_radius_multiplier: float = 1.0
    right_radius_multiplier: float = 1.0

    @property
    def effective_separation(self) -> float:
        return self.separation_multiplier * self.separation

    @property
    def left_radius(self) -> float:
        return self.left_radius_multiplier * self.radius

    @property
    def right_radius(self) -> float:
        return self.right_radius_multiplier * self.radius


@dataclass
class OdometryParams:
    open_loop: bool = False
    position_feedback: bool = True
    enable_odom_tf: bool = True
    base_frame_id: str = "base_link"
    odom_frame_id: str = "odom"
    pose_covariance_diagonal: list[float] = field(
        default_factory=lambda: _zeros(COVARIANCE_DIMENSIONS)
    )
    twist_covariance_diagonal: list[float] = field(
        default_factory=lambda: _zeros(COVARIANCE_DIMENSIONS)
    )


def declare_diff_drive_parameters(controller: ControllerInterface) -> None:
    """Declare every parameter the differential-drive controller reads."""
    wheels = WheelParams()
    odom = OdometryParams()
    defaults: dict[str, object] = {
        "left_wheel_names": [],
        "right_wheel_names": [],
        "wheel_separation": wheels.separation,
        "wheels_per_side": wheels.wheels_per_side,
        "wheel_radius": wheels.radius,
        "wheel_separation_multiplier": wheels.separation_multiplier,
        "left_wheel_radius_multiplier": wheels.left_radius_multiplier,
        "right_wheel_radius_multiplier": wheels.right_radius_multiplier,
        "odom_frame_id": odom.odom_frame_id,
        "base_frame_id": odom.base_frame_id,
        "pose_covariance_diagonal": [],
        "twist_covariance_diagonal": [],
        "open_loop": odom.open_loop,
        "position_feedback": odom.position_feedback,
        "enable_odom_tf": odom.enable_odom_tf,
        "cmd_vel_timeout": 0.5,
        "publish_limited_velocity": False,
        "velocity_rolling_window_size": 10,
        "use_stamped_vel": True,
    }
    for axis in LIMITED_AXES:
        for kind in ("velocity", "acceleration", "jerk"):
            defaults[f"{axis}.has_{kind}_limits"] = False
        for kind in ("velocity", "acceleration", "jerk"):
            defaults[f"{axis}.max_{kind}"] = math.nan
            defaults[f"{axis}.min_{kind}"] = math.nan
    defaults["publish_rate"] = 50.0

    for name, default in defaults.items():
        controller.declare_parameter(name, default)


def read_wheel_params(controller: ControllerInterface) -> WheelParams:
    """Read the wheel geometry parameters."""
    return WheelParams(
        wheels_per_side=int(controller.get_parameter("wheels_per_side")),
        separation=float(controller.get_parameter("wheel_separation")),
        radius=float(controller.get_parameter("wheel_radius")),
        separation_multiplier=float(controller.get_parameter("wheel_separation_multiplier")),
        left_radius_multiplier=float(controller.get_parameter("left_wheel_radius_multiplier")),
        right_radius_multiplier=float(
            controller.get_parameter("right_wheel_radius_multiplier")
        ),
    )


def _diagonal(controller: ControllerInterface, name: str) -> list[float]:
    values = [float(value) for value in controller.get_parameter(name)]
    if len(values) > COVARIANCE_DIMENSIONS:
        raise ValueError(
            f"'{name}' holds {len(values)} values, at most {COVARIANCE_DIMENSIONS} allowed"
        )
    return values + _zeros(COVARIANCE_DIMENSIONS - len(values))


def read_odometry_params(controller: ControllerInterface) -> OdometryParams:
    """Read the odometry parameters; covariance diagonals are padded with zeros."""
    return OdometryParams(
        open_loop=bool(controller.get_parameter("open_loop")),
        position_feedback=bool(controller.get_parameter("position_feedback")),
        enable_odom_tf=bool(controller.get_parameter("enable_odom_tf")),
        base_frame_id=str(controller.get_parameter("base_frame_id")),
        odom_frame_id=str(controller.get_parameter("odom_frame_id")),
        pose_covariance_diagonal=_diagonal(controller, "pose_covariance_diagonal"),
        twist_covariance_diagonal=_diagonal(controller, "twist_covariance_diagonal"),
    )


def read_speed_limiter(controller: ControllerInterface, prefix: str) -> SpeedLimiter:
    """Build the limiter for one axis, such as ``linear.x`` or ``angular.z``.

    Raises ValueError if a limit is enabled without its maximum.
    """

    def get(name: str) -> object:
        return controller.get_parameter(f"{prefix}.{name}")

    return SpeedLimiter(
        bool(get("has_velocity_limits")),
        bool(get("has_acceleration_limits")),
        bool(get("has_jerk_limits")),
        float(get("min_velocity")),
        float(get("max_velocity")),
        float(get("min_acceleration")),
        float(get("max_acceleration")),
        float(get("min_jerk")),
        float(get("max_jerk")),
    )