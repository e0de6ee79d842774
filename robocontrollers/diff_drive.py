"""Differential-drive base controller: velocity commands in, wheel commands and odometry out."""

from __future__ import annotations

import copy
import math
from collections import deque
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from robocontrollers.controller_base import (
    CallbackReturn,
    CommandInterface,
    ControllerInterface,
    InterfaceConfiguration,
    InterfaceConfigurationType,
    LifecycleState,
    Publisher,
    ReturnType,
    StateInterface,
)
from robocontrollers.diff_drive_params import (
    COVARIANCE_DIMENSIONS,
    OdometryMessage,
    OdometryParams,
    TransformStamped,
    Twist,
    TwistStamped,
    WheelParams,
    declare_diff_drive_parameters,
    quaternion_from_yaw,
    read_odometry_params,
    read_speed_limiter,
    read_wheel_params,
)
from robocontrollers.force_torque import Vector3
from robocontrollers.odometry import Odometry
from robocontrollers.speed_limiter import SpeedLimiter

COMMAND_TOPIC = "~/cmd_vel"
COMMAND_UNSTAMPED_TOPIC = "~/cmd_vel_unstamped"
COMMAND_OUT_TOPIC = "~/cmd_vel_out"
ODOMETRY_TOPIC = "/odom"
TRANSFORM_TOPIC = "/tf"

POSITION_INTERFACE = "position"
VELOCITY_INTERFACE = "velocity"


@dataclass
class WheelHandle:
    """The feedback and velocity-command interfaces of one wheel joint."""

    feedback: StateInterface
    velocity: CommandInterface


def _diagonal_matrix(diagonal: Sequence[float]) -> list[float]:
    matrix = [0.0] * (COVARIANCE_DIMENSIONS * COVARIANCE_DIMENSIONS)
    for index, value in enumerate(diagonal[:COVARIANCE_DIMENSIONS]):
        matrix[index * COVARIANCE_DIMENSIONS + index] = value
    return matrix


class DiffDriveController(ControllerInterface):
    """Turns twist commands into wheel velocities and publishes odometry.

    Commands arrive on ``~/cmd_vel`` (stamped) or ``~/cmd_vel_unstamped``;
    odometry is published on ``/odom`` and, if enabled, ``/tf``.
    """

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        super().__init__(clock)
        self.left_wheel_names: list[str] = []
        self.right_wheel_names: list[str] = []
        self.left_wheel_handles: list[WheelHandle] = []
        self.right_wheel_handles: list[WheelHandle] = []
        self.wheel_params = WheelParams()
        self.odom_params = OdometryParams()
        self.odometry = Odometry()
        self.cmd_vel_timeout = 0.5
        self.subscriber_is_active = False
        self.limiter_linear = SpeedLimiter()
        self.limiter_angular = SpeedLimiter()
        self.publish_limited_velocity = False
        self.use_stamped_vel = True
        self.publish_rate = 50.0
        self.publish_period = 0.0
        self.is_halted = False
        self._received: TwistStamped | None = None
        self._previous_commands: deque[TwistStamped] = deque()
        self._previous_update_timestamp = 0.0
        self._previous_publish_timestamp = 0.0
        self._pose_covariance = _diagonal_matrix([])
        self._twist_covariance = _diagonal_matrix([])
        self._odometry_publisher: Publisher | None = None
        self._transform_publisher: Publisher | None = None
        self._limited_velocity_publisher: Publisher | None = None
        self._unsubscribe: Callable[[], None] | None = None
        self._warned_zero_stamp = False

    def feedback_type(self) -> str:
        """The state interface read from each wheel."""
        return POSITION_INTERFACE if self.odom_params.position_feedback else VELOCITY_INTERFACE

    def on_init(self) -> CallbackReturn:
        try:
            declare_diff_drive_parameters(self)
        except Exception:
            self.logger.exception("exception during init")
            return CallbackReturn.ERROR
        return CallbackReturn.SUCCESS

    def command_interface_configuration(self) -> InterfaceConfiguration:
        names = [
            f"{joint}/{VELOCITY_INTERFACE}"
            for joint in [*self.left_wheel_names, *self.right_wheel_names]
        ]
        return InterfaceConfiguration(InterfaceConfigurationType.INDIVIDUAL, names)

    def state_interface_configuration(self) -> InterfaceConfiguration:
        feedback = self.feedback_type()
        names = [
            f"{joint}/{feedback}" for joint in [*self.left_wheel_names, *self.right_wheel_names]
        ]
        return InterfaceConfiguration(InterfaceConfigurationType.INDIVIDUAL, names)

    def update(self, time: float, period: float) -> ReturnType:
        if self.state is LifecycleState.INACTIVE:
            if not self.is_halted:
                self.halt()
                self.is_halted = True
            return ReturnType.OK

        stored = self._received
        if stored is None:
            self.logger.warning("Velocity message received was a nullptr.")
            return ReturnType.ERROR

        # Brake if the command is stale; this overrides the stored command.
        if time - stored.stamp > self.cmd_vel_timeout:
            stored.twist.linear.x = 0.0
            stored.twist.angular.z = 0.0

        # Limiting acts on a copy so the stored command stays untouched.
        command = copy.deepcopy(stored)
        wheels = self.wheel_params
        separation = wheels.effective_separation
        left_radius = wheels.left_radius
        right_radius = wheels.right_radius

        if self.odom_params.open_loop:
            self.odometry.update_open_loop(
                command.twist.linear.x, command.twist.angular.z, time
            )
        else:
            count = wheels.wheels_per_side
            left_sum = 0.0
            right_sum = 0.0
            pairs = zip(self.left_wheel_handles[:count], self.right_wheel_handles[:count])
            for index, (left, right) in enumerate(pairs):
                left_feedback = left.feedback.value
                right_feedback = right.feedback.value
                if math.isnan(left_feedback) or math.isnan(right_feedback):
                    self.logger.error(
                        "Either the left or right wheel %s is invalid for index [%d]",
                        self.feedback_type(),
                        index,
                    )
                    return ReturnType.ERROR
                left_sum += left_feedback
                right_sum += right_feedback
            left_mean = left_sum / count if count else math.nan
            right_mean = right_sum / count if count else math.nan
            if self.odom_params.position_feedback:
                self.odometry.update(left_mean, right_mean, time)
            else:
                self.odometry.update_from_velocity(left_mean, right_mean, time)

        if self._previous_publish_timestamp + self.publish_period < time:
            self._previous_publish_timestamp += self.publish_period
            self._publish_odometry(time)

        update_dt = time - self._previous_update_timestamp
        self._previous_update_timestamp = time

        last = self._previous_commands[-1].twist if self._previous_commands else Twist()
        second_to_last = self._previous_commands[0].twist if self._previous_commands else Twist()
        command.twist.linear.x = self.limiter_linear.limit(
            command.twist.linear.x, last.linear.x, second_to_last.linear.x, update_dt
        ).value
        command.twist.angular.z = self.limiter_angular.limit(
            command.twist.angular.z, last.angular.z, second_to_last.angular.z, update_dt
        ).value

        if self._previous_commands:
            self._previous_commands.popleft()
        self._previous_commands.append(command)

        if self.publish_limited_velocity and self._limited_velocity_publisher is not None:
            self._limited_velocity_publisher.publish(
                TwistStamped(stamp=time, frame_id=command.frame_id,
                             twist=copy.deepcopy(command.twist))
            )

        linear = command.twist.linear.x
        angular = command.twist.angular.z
        velocity_left = (linear - angular * separation / 2.0) / left_radius
        velocity_right = (linear + angular * separation / 2.0) / right_radius

        count = wheels.wheels_per_side
        for left, right in zip(self.left_wheel_handles[:count], self.right_wheel_handles[:count]):
            left.velocity.value = velocity_left
            right.velocity.value = velocity_right
        return ReturnType.OK

    def _publish_odometry(self, time: float) -> None:
        orientation = quaternion_from_yaw(self.odometry.heading)
        if self._odometry_publisher is not None:
            self._odometry_publisher.publish(
                OdometryMessage(
                    stamp=time,
                    frame_id=self.odom_params.odom_frame_id,
                    child_frame_id=self.odom_params.base_frame_id,
                    position=Vector3(self.odometry.x, self.odometry.y, 0.0),
                    orientation=orientation,
                    twist=Twist(
                        Vector3(x=self.odometry.linear), Vector3(z=self.odometry.angular)
                    ),
                    pose_covariance=list(self._pose_covariance),
                    twist_covariance=list(self._twist_covariance),
                )
            )
        if self.odom_params.enable_odom_tf and self._transform_publisher is not None:
            self._transform_publisher.publish(
                [
                    TransformStamped(
                        stamp=time,
                        frame_id=self.odom_params.odom_frame_id,
                        child_frame_id=self.odom_params.base_frame_id,
                        translation=Vector3(self.odometry.x, self.odometry.y, 0.0),
                        rotation=orientation,
                    )
                ]
            )

    def on_configure(self, previous_state: LifecycleState) -> CallbackReturn:
        self.left_wheel_names = list(self.get_parameter("left_wheel_names"))
        self.right_wheel_names = list(self.get_parameter("right_wheel_names"))

        if len(self.left_wheel_names) != len(self.right_wheel_names):
            self.logger.error(
                "The number of left wheels [%d] and the number of right wheels [%d] "
                "are different",
                len(self.left_wheel_names),
                len(self.right_wheel_names),
            )
            return CallbackReturn.ERROR
        if not self.left_wheel_names:
            self.logger.error("Wheel names parameters are empty!")
            return CallbackReturn.ERROR

        try:
            self.wheel_params = read_wheel_params(self)
            self.odom_params = read_odometry_params(self)
        except ValueError:
            self.logger.exception("invalid parameters")
            return CallbackReturn.ERROR

        wheels = self.wheel_params
        self.odometry.set_wheel_params(
            wheels.effective_separation, wheels.left_radius, wheels.right_radius
        )
        self.odometry.set_velocity_rolling_window_size(
            int(self.get_parameter("velocity_rolling_window_size"))
        )

        timeout_ms = math.trunc(float(self.get_parameter("cmd_vel_timeout")) * 1000.0)
        self.cmd_vel_timeout = timeout_ms / 1000.0
        self.publish_limited_velocity = bool(self.get_parameter("publish_limited_velocity"))
        self.use_stamped_vel = bool(self.get_parameter("use_stamped_vel"))

        try:
            self.limiter_linear = read_speed_limiter(self, "linear.x")
        except ValueError as error:
            self.logger.error("Error configuring linear speed limiter: %s", error)
        try:
            self.limiter_angular = read_speed_limiter(self, "angular.z")
        except ValueError as error:
            self.logger.error("Error configuring angular speed limiter: %s", error)

        if not self.reset():
            return CallbackReturn.ERROR

        # Both sides have the same number of wheels at this point.
        self.wheel_params.wheels_per_side = len(self.left_wheel_names)

        self._limited_velocity_publisher = (
            self._topic(COMMAND_OUT_TOPIC) if self.publish_limited_velocity else None
        )

        self._received = TwistStamped()
        self._previous_commands = deque([TwistStamped(), TwistStamped()])

        if self.use_stamped_vel:
            self._unsubscribe = self._topic(COMMAND_TOPIC).subscribe(self.receive_twist)
        else:
            self._unsubscribe = self._topic(COMMAND_UNSTAMPED_TOPIC).subscribe(
                self.receive_unstamped_twist
            )

        self._odometry_publisher = self._topic(ODOMETRY_TOPIC)
        self.publish_rate = float(self.get_parameter("publish_rate"))
        self.publish_period = math.inf if self.publish_rate == 0.0 else 1.0 / self.publish_rate
        self._previous_publish_timestamp = self.now()

        self._pose_covariance = _diagonal_matrix(self.odom_params.pose_covariance_diagonal)
        self._twist_covariance = _diagonal_matrix(self.odom_params.twist_covariance_diagonal)

        self._transform_publisher = self._topic(TRANSFORM_TOPIC)
        self._previous_update_timestamp = self.now()
        return CallbackReturn.SUCCESS

    def _configure_side(self, side: str, wheel_names: Sequence[str]) -> list[WheelHandle] | None:
        if not wheel_names:
            self.logger.error("No '%s' wheel names specified", side)
            return None
        feedback = self.feedback_type()
        handles = []
        for wheel in wheel_names:
            state = next(
                (
                    interface
                    for interface in self.state_interfaces
                    if interface.name == wheel and interface.interface_name == feedback
                ),
                None,
            )
            if state is None:
                self.logger.error("Unable to obtain joint state handle for %s", wheel)
                return None
            command = next(
                (
                    interface
                    for interface in self.command_interfaces
                    if interface.name == wheel and interface.interface_name == VELOCITY_INTERFACE
                ),
                None,
            )
            if command is None:
                self.logger.error("Unable to obtain joint command handle for %s", wheel)
                return None
            handles.append(WheelHandle(state, command))
        return handles

    def on_activate(self, previous_state: LifecycleState) -> CallbackReturn:
        left = self._configure_side("left", self.left_wheel_names)
        right = self._configure_side("right", self.right_wheel_names)
        if left is None or right is None:
            return CallbackReturn.ERROR
        if not left or not right:
            self.logger.error(
                "Either left wheel interfaces, right wheel interfaces are non existent"
            )
            return CallbackReturn.ERROR
        self.left_wheel_handles = left
        self.right_wheel_handles = right
        self.is_halted = False
        self.subscriber_is_active = True
        self.logger.debug("Subscriber and publisher are now active.")
        return CallbackReturn.SUCCESS

    def on_deactivate(self, previous_state: LifecycleState) -> CallbackReturn:
        self.subscriber_is_active = False
        return CallbackReturn.SUCCESS

    def on_cleanup(self, previous_state: LifecycleState) -> CallbackReturn:
        if not self.reset():
            return CallbackReturn.ERROR
        self._received = TwistStamped()
        return CallbackReturn.SUCCESS

    def on_error(self, previous_state: LifecycleState) -> CallbackReturn:
        return CallbackReturn.SUCCESS if self.reset() else CallbackReturn.ERROR

    def on_shutdown(self, previous_state: LifecycleState) -> CallbackReturn:
        return CallbackReturn.SUCCESS

    def receive_twist(self, msg: TwistStamped) -> None:
        """Store a stamped command; a zero stamp is replaced by the current time."""
        if not self.subscriber_is_active:
            self.logger.warning("Can't accept new commands. subscriber is inactive")
            return
        received = copy.deepcopy(msg)
        if received.stamp == 0.0:
            if not self._warned_zero_stamp:
                self.logger.warning(
                    "Received TwistStamped with zero timestamp, setting it to current time, "
                    "this message will only be shown once"
                )
                self._warned_zero_stamp = True
            received.stamp = self.now()
        self._received = received

    def receive_unstamped_twist(self, msg: Twist) -> None:
        """Store an unstamped command, stamped with the current time."""
        if not self.subscriber_is_active:
            self.logger.warning("Can't accept new commands. subscriber is inactive")
            return
        if self._received is None:
            self._received = TwistStamped()
        self._received.twist = copy.deepcopy(msg)
        self._received.stamp = self.now()

    def last_received_twist(self) -> TwistStamped | None:
        """The stored command, or None if none is held."""
        return self._received

    def reset(self) -> bool:
        """Clear odometry pose, command history, wheel handles and subscriptions."""
        self.odometry.reset_odometry()
        self._previous_commands = deque()
        self.left_wheel_handles = []
        self.right_wheel_handles = []
        self.subscriber_is_active = False
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._received = None
        self.is_halted = False
        return True

    def halt(self) -> None:
        """Command zero velocity to every registered wheel."""
        for handle in [*self.left_wheel_handles, *self.right_wheel_handles]:
            handle.velocity.value = 0.0