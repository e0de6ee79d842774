"""Broadcaster that publishes force/torque sensor readings as wrench messages."""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from robocontrollers.controller_base import (
    CallbackReturn,
    ControllerInterface,
    InterfaceConfiguration,
    InterfaceConfigurationType,
    LifecycleState,
    Publisher,
    ReturnType,
    StateInterface,
)

AXES = ("force.x", "force.y", "force.z", "torque.x", "torque.y", "torque.z")
WRENCH_TOPIC = "~/wrench"


@dataclass
class Vector3:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


@dataclass
class Wrench:
    force: Vector3 = field(default_factory=Vector3)
    torque: Vector3 = field(default_factory=Vector3)


@dataclass
class WrenchStamped:
    frame_id: str = ""
    stamp: float = 0.0
    wrench: Wrench = field(default_factory=Wrench)


class ForceTorqueSensor:
    """Six-axis force/torque sensor read from individual state interfaces.

    Either a sensor name is given, whose interfaces are ``<name>/force.x`` and
    so on, or six full interface names, any of which may be empty; an axis
    without an interface reads as NaN.
    """

    def __init__(self, sensor_name: str = "", interface_names: Sequence[str] = ()) -> None:
        names = tuple(interface_names)
        if sensor_name and names:
            raise ValueError("give either a sensor name or interface names, not both")
        if sensor_name:
            names = tuple(f"{sensor_name}/{axis}" for axis in AXES)
        elif len(names) != len(AXES):
            raise ValueError(f"exactly {len(AXES)} interface names are required")
        self.sensor_name = sensor_name
        self._names = names
        self._interfaces: dict[int, StateInterface] = {}

    def get_state_interface_names(self) -> list[str]:
        return [name for name in self._names if name]

    def assign_loaned_state_interfaces(self, state_interfaces: Sequence[StateInterface]) -> bool:
        """Take the matching interfaces; True if every configured one was found."""
        by_name: dict[str, StateInterface] = {}
        for interface in state_interfaces:
            by_name.setdefault(interface.full_name, interface)
        self._interfaces = {
            slot: by_name[name]
            for slot, name in enumerate(self._names)
            if name and name in by_name
        }
        return len(self._interfaces) == len(self.get_state_interface_names())

    def release_interfaces(self) -> None:
        self._interfaces = {}

    def get_values_as_message(self) -> Wrench:
        readings = [
            self._interfaces[slot].value if slot in self._interfaces else math.nan
            for slot in range(len(AXES))
        ]
        return Wrench(Vector3(*readings[:3]), Vector3(*readings[3:]))


class ForceTorqueSensorBroadcaster(ControllerInterface):
    """Publishes the sensor's wrench on ``~/wrench`` at every update."""

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        super().__init__(clock)
        self.sensor_name = ""
        self.interface_names: list[str] = [""] * len(AXES)
        self.frame_id = ""
        self.sensor: ForceTorqueSensor | None = None
        self._publisher: Publisher | None = None

    def on_init(self) -> CallbackReturn:
        self.declare_parameter("sensor_name", "")
        for axis in AXES:
            self.declare_parameter(f"interface_names.{axis}", "")
        self.declare_parameter("frame_id", "")
        return CallbackReturn.SUCCESS

    def on_configure(self, previous_state: LifecycleState) -> CallbackReturn:
        self.sensor_name = self.get_parameter("sensor_name")
        self.interface_names = [self.get_parameter(f"interface_names.{axis}") for axis in AXES]
        no_interface_names = not any(self.interface_names)

        if not self.sensor_name and no_interface_names:
            self.logger.error(
                "'sensor_name' or at least one 'interface_names.[force|torque].[x|y|z]' "
                "parameter has to be specified."
            )
            return CallbackReturn.ERROR
        if self.sensor_name and not no_interface_names:
            self.logger.error(
                "both 'sensor_name' and 'interface_names.[force|torque].[x|y|z]' "
                "parameters can not be specified together."
            )
            return CallbackReturn.ERROR

        self.frame_id = self.get_parameter("frame_id")
        if not self.frame_id:
            self.logger.error("'frame_id' parameter has to be provided.")
            return CallbackReturn.ERROR

        if self.sensor_name:
            self.sensor = ForceTorqueSensor(sensor_name=self.sensor_name)
        else:
            self.sensor = ForceTorqueSensor(interface_names=self.interface_names)

        self._publisher = self._topic(WRENCH_TOPIC)
        self.logger.debug("configure successful")
        return CallbackReturn.SUCCESS

    def command_interface_configuration(self) -> InterfaceConfiguration:
        return InterfaceConfiguration(InterfaceConfigurationType.NONE)

    def state_interface_configuration(self) -> InterfaceConfiguration:
        names = self.sensor.get_state_interface_names() if self.sensor else []
        return InterfaceConfiguration(InterfaceConfigurationType.INDIVIDUAL, names)

    def on_activate(self, previous_state: LifecycleState) -> CallbackReturn:
        if self.sensor is not None:
            self.sensor.assign_loaned_state_interfaces(self.state_interfaces)
        return CallbackReturn.SUCCESS

    def on_deactivate(self, previous_state: LifecycleState) -> CallbackReturn:
        if self.sensor is not None:
            self.sensor.release_interfaces()
        return CallbackReturn.SUCCESS

    def update(self, time: float, period: float) -> ReturnType:
        if self._publisher is not None and self.sensor is not None:
            self._publisher.publish(
                WrenchStamped(self.frame_id, time, self.sensor.get_values_as_message())
            )
        return ReturnType.OK