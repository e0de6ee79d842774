import pytest

from robocontrollers.controller_base import (
    CallbackReturn,
    CommandInterface,
    ControllerInterface,
    InterfaceConfiguration,
    InterfaceConfigurationType,
    LifecycleState,
    ParameterError,
    Publisher,
    ReturnType,
    StateInterface,
)


class _Recorder(ControllerInterface):
    def __init__(self, results=None, clock=None):
        super().__init__(clock=clock)
        self.results = results or {}
        self.calls = []

    def _hook(self, hook, previous_state=None):
        self.calls.append((hook, previous_state))
        result = self.results.get(hook, CallbackReturn.SUCCESS)
        if isinstance(result, Exception):
            raise result
        return result

    def on_init(self):
        self.declare_parameter("joints", [])
        return self._hook("init")

    def on_configure(self, previous_state):
        self._topic("~/commands")
        self._topic("/odom")
        return self._hook("configure", previous_state)

    def on_activate(self, previous_state):
        return self._hook("activate", previous_state)

    def on_deactivate(self, previous_state):
        return self._hook("deactivate", previous_state)

    def on_cleanup(self, previous_state):
        return self._hook("cleanup", previous_state)

    def on_error(self, previous_state):
        return self._hook("error", previous_state)


def test_init_runs_on_init_and_declares():
    controller = _Recorder()
    assert ControllerInterface.init(controller, "ctrl") is ReturnType.OK
    assert controller.name == "ctrl"
    assert controller.state is LifecycleState.UNCONFIGURED
    assert ControllerInterface.get_parameter(controller, "joints") == []


def test_init_reports_error():
    controller = _Recorder({"init": CallbackReturn.ERROR})
    assert ControllerInterface.init(controller, "ctrl") is ReturnType.ERROR


def test_init_exception_is_error():
    controller = _Recorder({"init": RuntimeError("boom")})
    assert ControllerInterface.init(controller, "ctrl") is ReturnType.ERROR


def test_parameters_declare_get_set():
    controller = _Recorder()
    ControllerInterface.init(controller, "ctrl")
    assert ControllerInterface.declare_parameter(controller, "rate", 50.0) == 50.0
    assert ControllerInterface.declare_parameter(controller, "rate", 10.0) == 50.0
    ControllerInterface.set_parameter(controller, "rate", 20.0)
    assert ControllerInterface.get_parameter(controller, "rate") == 20.0


def test_parameter_lists_are_copied():
    controller = _Recorder()
    ControllerInterface.init(controller, "ctrl")
    names = ["a", "b"]
    ControllerInterface.set_parameter(controller, "joints", names)
    names.append("c")
    assert ControllerInterface.get_parameter(controller, "joints") == ["a", "b"]


def test_undeclared_parameter_raises():
    controller = _Recorder()
    ControllerInterface.init(controller, "ctrl")
    with pytest.raises(ParameterError):
        ControllerInterface.get_parameter(controller, "missing")
    with pytest.raises(ParameterError):
        ControllerInterface.set_parameter(controller, "missing", 1)


def test_full_lifecycle():
    controller = _Recorder()
    ControllerInterface.init(controller, "ctrl")
    assert ControllerInterface.configure(controller) is LifecycleState.INACTIVE
    assert ControllerInterface.activate(controller) is LifecycleState.ACTIVE
    assert ControllerInterface.deactivate(controller) is LifecycleState.INACTIVE
    assert ControllerInterface.cleanup(controller) is LifecycleState.UNCONFIGURED
    assert [hook for hook, _ in controller.calls] == [
        "init", "configure", "activate", "deactivate", "cleanup"
    ]
    assert controller.calls[1][1] is LifecycleState.UNCONFIGURED


def test_failure_keeps_state():
    controller = _Recorder({"configure": CallbackReturn.FAILURE})
    ControllerInterface.init(controller, "ctrl")
    assert ControllerInterface.configure(controller) is LifecycleState.UNCONFIGURED
    assert "error" not in [hook for hook, _ in controller.calls]


def test_error_recovers_through_on_error():
    controller = _Recorder({"configure": CallbackReturn.ERROR})
    ControllerInterface.init(controller, "ctrl")
    assert ControllerInterface.configure(controller) is LifecycleState.UNCONFIGURED
    assert controller.calls[-1][0] == "error"


def test_unrecovered_error_finalizes():
    controller = _Recorder({"configure": CallbackReturn.ERROR, "error": CallbackReturn.ERROR})
    ControllerInterface.init(controller, "ctrl")
    assert ControllerInterface.configure(controller) is LifecycleState.FINALIZED


def test_invalid_transition_keeps_state():
    controller = _Recorder()
    ControllerInterface.init(controller, "ctrl")
    assert ControllerInterface.activate(controller) is LifecycleState.UNCONFIGURED
    assert "activate" not in [hook for hook, _ in controller.calls]


def test_topic_names_are_resolved():
    controller = _Recorder()
    ControllerInterface.init(controller, "ctrl")
    ControllerInterface.configure(controller)
    assert set(controller.topics) == {"/ctrl/commands", "/odom"}
    assert controller.topics["/ctrl/commands"].topic == "/ctrl/commands"


def test_publisher_delivers_and_unsubscribes():
    publisher = Publisher("/topic")
    received = []
    cancel = publisher.subscribe(received.append)
    publisher.publish("first")
    cancel()
    publisher.publish("second")
    assert received == ["first"]
    assert publisher.last_message == "second"
    assert publisher.publish_count == 2


def test_interfaces_assign_and_release():
    controller = _Recorder()
    cmd = CommandInterface("joint1", "position", 1.1)
    state = StateInterface("joint1", "velocity", 0.5)
    ControllerInterface.assign_interfaces(controller, [cmd], [state])
    assert controller.command_interfaces == [cmd]
    assert controller.state_interfaces == [state]
    assert cmd.full_name == "joint1/position"
    ControllerInterface.release_interfaces(controller)
    assert controller.command_interfaces == []
    assert controller.state_interfaces == []


def test_default_configurations_claim_nothing():
    controller = ControllerInterface()
    assert controller.command_interface_configuration() == InterfaceConfiguration(
        InterfaceConfigurationType.NONE
    )
    assert controller.state_interface_configuration().names == []
    assert controller.update(0.0, 0.01) is ReturnType.OK


def test_now_uses_clock():
    controller = ControllerInterface(clock=lambda: 42.5)
    assert controller.now() == 42.5