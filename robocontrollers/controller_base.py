"""Lifecycle, parameters, hardware interfaces and topics shared by all controllers."""

from __future__ import annotations

import logging
import math
import time as _time
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Callable


class CallbackReturn(Enum):
    """Outcome of a lifecycle callback."""

    SUCCESS = "success"
    FAILURE = "failure"
    ERROR = "error"


class ReturnType(Enum):
    """Outcome of an initialisation or an update cycle."""

    OK = "ok"
    ERROR = "error"


class LifecycleState(IntEnum):
    """Primary lifecycle states of a controller."""

    UNKNOWN = 0
    UNCONFIGURED = 1
    INACTIVE = 2
    ACTIVE = 3
    FINALIZED = 4


class InterfaceConfigurationType(Enum):
    ALL = "all"
    INDIVIDUAL = "individual"
    NONE = "none"


@dataclass
class InterfaceConfiguration:
    """Which hardware interfaces a controller claims."""

    type: InterfaceConfigurationType
    names: list[str] = field(default_factory=list)


@dataclass(eq=False)
class _Interface:
    name: str
    interface_name: str
    value: float = math.nan

    @property
    def full_name(self) -> str:
        return f"{self.name}/{self.interface_name}"


class StateInterface(_Interface):
    """A readable hardware value, such as a joint position."""


class CommandInterface(_Interface):
    """A writable hardware value, such as a joint velocity command."""


class Publisher:
    """A topic: delivers each published message to every subscriber."""

    def __init__(self, topic: str) -> None:
        self.topic = topic
        self.last_message: Any = None
        self.publish_count = 0
        self._subscribers: list[Callable[[Any], None]] = []

    def publish(self, message: Any) -> None:
        self.last_message = message
        self.publish_count += 1
        for callback in list(self._subscribers):
            callback(message)

    def subscribe(self, callback: Callable[[Any], None]) -> Callable[[], None]:
        """Register ``callback``; the returned function removes it again."""
        self._subscribers.append(callback)

        def cancel() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return cancel


class ParameterError(LookupError):
    """Raised for access to a parameter that was never declared."""


def _copy_value(value: Any) -> Any:
    return list(value) if isinstance(value, (list, tuple)) else value


class ControllerInterface:
    """Base of all controllers: lifecycle driver, parameter store and interfaces.

    Subclasses override the ``on_*`` callbacks, the interface configurations
    and ``update``. Times are seconds as floats.
    """

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        self.name = ""
        self.topics: dict[str, Publisher] = {}
        self.command_interfaces: list[CommandInterface] = []
        self.state_interfaces: list[StateInterface] = []
        self.logger = logging.getLogger(__name__)
        self._clock = clock or _time.time
        self._parameters: dict[str, Any] = {}
        self._state = LifecycleState.UNKNOWN

    @property
    def state(self) -> LifecycleState:
        return self._state

    def init(self, name: str) -> ReturnType:
        """Name the controller and run ``on_init``."""
        self.name = name
        self.logger = logging.getLogger(f"{__name__}.{name}")
        self._state = LifecycleState.UNCONFIGURED
        result = self._call(self.on_init)
        return ReturnType.OK if result is CallbackReturn.SUCCESS else ReturnType.ERROR

    def declare_parameter(self, name: str, default: Any) -> Any:
        """Declare a parameter unless already declared; return its value."""
        if name not in self._parameters:
            self._parameters[name] = _copy_value(default)
        return self._parameters[name]

    def get_parameter(self, name: str) -> Any:
        try:
            return self._parameters[name]
        except KeyError:
            raise ParameterError(f"parameter '{name}' is not declared") from None

    def set_parameter(self, name: str, value: Any) -> None:
        if name not in self._parameters:
            raise ParameterError(f"parameter '{name}' is not declared")
        self._parameters[name] = _copy_value(value)

    def assign_interfaces(
        self,
        command_interfaces: list[CommandInterface],
        state_interfaces: list[StateInterface],
    ) -> None:
        self.command_interfaces = list(command_interfaces)
        self.state_interfaces = list(state_interfaces)

    def release_interfaces(self) -> None:
        self.command_interfaces = []
        self.state_interfaces = []

    def now(self) -> float:
        return self._clock()

    def configure(self) -> LifecycleState:
        return self._transition(
            LifecycleState.UNCONFIGURED, self.on_configure, LifecycleState.INACTIVE
        )

    def activate(self) -> LifecycleState:
        return self._transition(LifecycleState.INACTIVE, self.on_activate, LifecycleState.ACTIVE)

    def deactivate(self) -> LifecycleState:
        return self._transition(
            LifecycleState.ACTIVE, self.on_deactivate, LifecycleState.INACTIVE
        )

    def cleanup(self) -> LifecycleState:
        return self._transition(
            LifecycleState.INACTIVE, self.on_cleanup, LifecycleState.UNCONFIGURED
        )

    def on_init(self) -> CallbackReturn:
        return CallbackReturn.SUCCESS

    def on_configure(self, previous_state: LifecycleState) -> CallbackReturn:
        return CallbackReturn.SUCCESS

    def on_activate(self, previous_state: LifecycleState) -> CallbackReturn:
        return CallbackReturn.SUCCESS

    def on_deactivate(self, previous_state: LifecycleState) -> CallbackReturn:
        return CallbackReturn.SUCCESS

    def on_cleanup(self, previous_state: LifecycleState) -> CallbackReturn:
        return CallbackReturn.SUCCESS

    def on_error(self, previous_state: LifecycleState) -> CallbackReturn:
        return CallbackReturn.SUCCESS

    def on_shutdown(self, previous_state: LifecycleState) -> CallbackReturn:
        return CallbackReturn.SUCCESS

    def command_interface_configuration(self) -> InterfaceConfiguration:
        return InterfaceConfiguration(InterfaceConfigurationType.NONE)

    def state_interface_configuration(self) -> InterfaceConfiguration:
        return InterfaceConfiguration(InterfaceConfigurationType.NONE)

    def update(self, time: float, period: float) -> ReturnType:
        return ReturnType.OK

    def _topic(self, topic: str) -> Publisher:
        """Return the topic of that name, expanding ``~/`` to the controller name."""
        if topic.startswith("~/"):
            resolved = f"/{self.name}{topic[1:]}"
        elif topic.startswith("/"):
            resolved = topic
        else:
            resolved = f"/{topic}"
        return self.topics.setdefault(resolved, Publisher(resolved))

    def _call(self, callback: Callable[..., CallbackReturn], *args: Any) -> CallbackReturn:
        try:
            return callback(*args)
        except Exception:
            self.logger.exception("exception in %s", getattr(callback, "__name__", callback))
            return CallbackReturn.ERROR

    def _transition(
        self,
        source: LifecycleState,
        callback: Callable[[LifecycleState], CallbackReturn],
        target: LifecycleState,
    ) -> LifecycleState:
        if self._state is not source:
            self.logger.warning(
                "cannot run %s from state %s", callback.__name__, self._state.name
            )
            return self._state
        result = self._call(callback, source)
        if result is CallbackReturn.SUCCESS:
            self._state = target
        elif result is CallbackReturn.ERROR:
            recovered = self._call(self.on_error, source) is CallbackReturn.SUCCESS
            self._state = LifecycleState.UNCONFIGURED if recovered else LifecycleState.FINALIZED
        return self._state