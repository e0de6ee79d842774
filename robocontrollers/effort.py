"""Forward command controller fixed to the effort interface of a joint group."""

from __future__ import annotations

from collections.abc import Callable

from robocontrollers.controller_base import CallbackReturn, LifecycleState, ParameterError
from robocontrollers.forward_command import ForwardCommandController

EFFORT_INTERFACE = "effort"


class JointGroupEffortController(ForwardCommandController):
    """Forwards effort commands to a set of joints and zeroes them on deactivation."""

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        super().__init__(clock)
        self.logger_name = "joint effort controller"
        self.interface_name = EFFORT_INTERFACE

    def on_init(self) -> CallbackReturn:
        result = super().on_init()
        if result is not CallbackReturn.SUCCESS:
            return result
        try:
            # Keep the declared parameter in line with the fixed interface.
            self.set_parameter("interface_name", EFFORT_INTERFACE)
        except ParameterError:
            self.logger.exception("exception during init")
            return CallbackReturn.ERROR
        return CallbackReturn.SUCCESS

    def on_deactivate(self, previous_state: LifecycleState) -> CallbackReturn:
        result = super().on_deactivate(previous_state)
        for interface in self.command_interfaces:
            interface.value = 0.0
        return result