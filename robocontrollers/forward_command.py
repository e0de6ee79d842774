"""Controller that forwards a vector of commands to a group of joint interfaces."""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence
from typing import Any

from robocontrollers.controller_base import (
    CallbackReturn,
    CommandInterface,
    ControllerInterface,
    InterfaceConfiguration,
    InterfaceConfigurationType,
    LifecycleState,
    ReturnType,
)

COMMAND_TOPIC = "~/commands"


class CommandBuffer:
    """Thread-safe holder of the latest command, written by subscribers and read by updates."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._command: tuple[float, ...] | None = None

    def write(self, command: Sequence[float] | None) -> None:
        """Store ``command``; ``None`` clears the buffer."""
        stored = None if command is None else tuple(float(value) for value in command)
        with self._lock:
            self._command = stored

    def read(self) -> tuple[float, ...] | None:
        """Return the latest command, or ``None`` if there is none."""
        with self._lock:
            return self._command

    def reset(self) -> None:
        """Drop any stored command."""
        self.write(None)


def _ordered_interfaces(
    interfaces: Sequence[CommandInterface], joint_names: Sequence[str], interface_name: str
) -> list[CommandInterface] | None:
    """Interfaces matching each joint in joint order; ``None`` if a joint has no match."""
    ordered = [
        interface
        for joint in joint_names
        for interface in interfaces
        if interface.name == joint and interface.interface_name == interface_name
    ]
    return ordered if len(ordered) == len(joint_names) else None


def _command_data(message: Any) -> Sequence[float]:
    return getattr(message, "data", message)


class ForwardCommandController(ControllerInterface):
    """Writes each received command vector to the joints' command interfaces.

    Parameters: ``joints`` (names of the joints) and ``interface_name`` (the
    interface to command). Commands arrive on the ``~/commands`` topic.
    """

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        super().__init__(clock)
        self.joint_names: list[str] = []
        self.interface_name = ""
        self.logger_name = ""
        self.command_buffer = CommandBuffer()
        self._unsubscribe: Callable[[], None] | None = None

    def on_init(self) -> CallbackReturn:
        self.declare_parameter("joints", [])
        self.declare_parameter("interface_name", "")
        return CallbackReturn.SUCCESS

    def on_configure(self, previous_state: LifecycleState) -> CallbackReturn:
        self.joint_names = list(self.get_parameter("joints"))
        if not self.joint_names:
            self.logger.error("'joints' parameter was empty")
            return CallbackReturn.ERROR

        # Specialised controllers fix the interface before configuring.
        if not self.interface_name:
            self.interface_name = self.get_parameter("interface_name")
        if not self.interface_name:
            self.logger.error("'interface_name' parameter was empty")
            return CallbackReturn.ERROR

        if self._unsubscribe is not None:
            self._unsubscribe()
        self._unsubscribe = self._topic(COMMAND_TOPIC).subscribe(
            lambda message: self.command_buffer.write(_command_data(message))
        )

        self.logger.info("configure successful")
        return CallbackReturn.SUCCESS

    def command_interface_configuration(self) -> InterfaceConfiguration:
        return InterfaceConfiguration(
            InterfaceConfigurationType.INDIVIDUAL,
            [f"{joint}/{self.interface_name}" for joint in self.joint_names],
        )

    def state_interface_configuration(self) -> InterfaceConfiguration:
        return InterfaceConfiguration(InterfaceConfigurationType.NONE)

    def on_activate(self, previous_state: LifecycleState) -> CallbackReturn:
        ordered = _ordered_interfaces(
            self.command_interfaces, self.joint_names, self.interface_name
        )
        if ordered is None or len(self.command_interfaces) != len(ordered):
            self.logger.error(
                "Expected %d command interfaces, got %d",
                len(self.joint_names),
                0 if ordered is None else len(ordered),
            )
            return CallbackReturn.ERROR

        # Discard a command that arrived while the controller was inactive.
        self.command_buffer.reset()
        return CallbackReturn.SUCCESS

    def on_deactivate(self, previous_state: LifecycleState) -> CallbackReturn:
        self.command_buffer.reset()
        return CallbackReturn.SUCCESS

    def update(self, time: float, period: float) -> ReturnType:
        command = self.command_buffer.read()
        if command is None:
            return ReturnType.OK

        if len(command) != len(self.command_interfaces):
            self.logger.error(
                "command size (%d) does not match number of interfaces (%d)",
                len(command),
                len(self.command_interfaces),
            )
            return ReturnType.ERROR

        for interface, value in zip(self.command_interfaces, command):
            interface.value = value
        return ReturnType.OK