import math

import pytest

from robocontrollers.controller_base import (
    CallbackReturn,
    InterfaceConfigurationType,
    LifecycleState,
    ReturnType,
    StateInterface,
)
from robocontrollers.force_torque import ForceTorqueSensor, ForceTorqueSensorBroadcaster

SENSOR_NAME = "fts_sensor"
FRAME_ID = "fts_sensor_frame"
SENSOR_VALUES = [1.1, 2.2, 3.3, 4.4, 5.5, 6.6]
AXES = ["force.x", "force.y", "force.z", "torque.x", "torque.y", "torque.z"]
TOPIC = "/test_force_torque_sensor_broadcaster/wrench"


@pytest.fixture
def broadcaster():
    fts = ForceTorqueSensorBroadcaster()
    assert fts.init("test_force_torque_sensor_broadcaster") is ReturnType.OK
    fts.assign_interfaces(
        [], [StateInterface(SENSOR_NAME, axis, v) for axis, v in zip(AXES, SENSOR_VALUES)]
    )
    return fts


def configure(fts):
    return fts.on_configure(LifecycleState.UNCONFIGURED)


def set_partial_interface_names(fts):
    fts.set_parameter("interface_names.force.x", "fts_sensor/force.x")
    fts.set_parameter("interface_names.torque.z", "fts_sensor/torque.z")


def publish_and_get(fts):
    received = []
    fts.topics[TOPIC].subscribe(received.append)
    assert fts.update(0.0, 0.01) is ReturnType.OK
    assert len(received) == 1
    return received[0]


def test_sensor_name_and_interface_names_not_set(broadcaster):
    assert configure(broadcaster) is CallbackReturn.ERROR


def test_interface_names_without_frame_id(broadcaster):
    set_partial_interface_names(broadcaster)
    assert configure(broadcaster) is CallbackReturn.ERROR


def test_sensor_name_without_frame_id(broadcaster):
    broadcaster.set_parameter("sensor_name", SENSOR_NAME)
    assert configure(broadcaster) is CallbackReturn.ERROR


def test_sensor_name_and_interface_names_together(broadcaster):
    broadcaster.set_parameter("sensor_name", SENSOR_NAME)
    set_partial_interface_names(broadcaster)
    assert configure(broadcaster) is CallbackReturn.ERROR


def test_sensor_name_empty(broadcaster):
    broadcaster.set_parameter("sensor_name", "")
    assert configure(broadcaster) is CallbackReturn.ERROR


def test_interface_names_empty(broadcaster):
    broadcaster.set_parameter("interface_names.force.x", "")
    broadcaster.set_parameter("interface_names.torque.z", "")
    assert configure(broadcaster) is CallbackReturn.ERROR


def test_sensor_name_configure_success(broadcaster):
    broadcaster.set_parameter("sensor_name", SENSOR_NAME)
    broadcaster.set_parameter("frame_id", FRAME_ID)
    assert configure(broadcaster) is CallbackReturn.SUCCESS
    config = broadcaster.state_interface_configuration()
    assert config.type is InterfaceConfigurationType.INDIVIDUAL
    assert config.names == [f"fts_sensor/{axis}" for axis in AXES]
    assert broadcaster.command_interface_configuration().type is InterfaceConfigurationType.NONE


def test_interface_names_configure_success(broadcaster):
    set_partial_interface_names(broadcaster)
    broadcaster.set_parameter("frame_id", FRAME_ID)
    assert configure(broadcaster) is CallbackReturn.SUCCESS
    assert broadcaster.state_interface_configuration().names == [
        "fts_sensor/force.x",
        "fts_sensor/torque.z",
    ]


def test_sensor_name_activate_and_update(broadcaster):
    broadcaster.set_parameter("sensor_name", SENSOR_NAME)
    broadcaster.set_parameter("frame_id", FRAME_ID)
    assert configure(broadcaster) is CallbackReturn.SUCCESS
    assert broadcaster.on_activate(LifecycleState.INACTIVE) is CallbackReturn.SUCCESS
    assert broadcaster.update(0.0, 0.01) is ReturnType.OK


def test_interface_names_activate_and_update(broadcaster):
    set_partial_interface_names(broadcaster)
    broadcaster.set_parameter("frame_id", FRAME_ID)
    assert configure(broadcaster) is CallbackReturn.SUCCESS
    assert broadcaster.on_activate(LifecycleState.INACTIVE) is CallbackReturn.SUCCESS
    assert broadcaster.update(0.0, 0.01) is ReturnType.OK


def test_sensor_name_publish(broadcaster):
    broadcaster.set_parameter("sensor_name", SENSOR_NAME)
    broadcaster.set_parameter("frame_id", FRAME_ID)
    assert configure(broadcaster) is CallbackReturn.SUCCESS
    assert broadcaster.on_activate(LifecycleState.INACTIVE) is CallbackReturn.SUCCESS

    msg = publish_and_get(broadcaster)
    assert msg.frame_id == FRAME_ID
    assert msg.stamp == 0.0
    w = msg.wrench
    assert [w.force.x, w.force.y, w.force.z, w.torque.x, w.torque.y, w.torque.z] == SENSOR_VALUES


def test_interface_names_publish(broadcaster):
    set_partial_interface_names(broadcaster)
    broadcaster.set_parameter("frame_id", FRAME_ID)
    assert configure(broadcaster) is CallbackReturn.SUCCESS
    assert broadcaster.on_activate(LifecycleState.INACTIVE) is CallbackReturn.SUCCESS

    msg = publish_and_get(broadcaster)
    assert msg.frame_id == FRAME_ID
    assert msg.wrench.force.x == SENSOR_VALUES[0]
    assert math.isnan(msg.wrench.force.y)
    assert math.isnan(msg.wrench.force.z)
    assert math.isnan(msg.wrench.torque.x)
    assert math.isnan(msg.wrench.torque.y)
    assert msg.wrench.torque.z == SENSOR_VALUES[5]


def test_all_interface_names_publish(broadcaster):
    for axis in AXES:
        broadcaster.set_parameter(f"interface_names.{axis}", f"fts_sensor/{axis}")
    broadcaster.set_parameter("frame_id", FRAME_ID)
    assert configure(broadcaster) is CallbackReturn.SUCCESS
    assert broadcaster.on_activate(LifecycleState.INACTIVE) is CallbackReturn.SUCCESS

    msg = publish_and_get(broadcaster)
    assert msg.frame_id == FRAME_ID
    w = msg.wrench
    assert [w.force.x, w.force.y, w.force.z, w.torque.x, w.torque.y, w.torque.z] == SENSOR_VALUES


def test_deactivate_releases_interfaces(broadcaster):
    broadcaster.set_parameter("sensor_name", SENSOR_NAME)
    broadcaster.set_parameter("frame_id", FRAME_ID)
    assert configure(broadcaster) is CallbackReturn.SUCCESS
    assert broadcaster.on_activate(LifecycleState.INACTIVE) is CallbackReturn.SUCCESS
    assert broadcaster.on_deactivate(LifecycleState.ACTIVE) is CallbackReturn.SUCCESS
    msg = publish_and_get(broadcaster)
    assert math.isnan(msg.wrench.force.x)


def test_sensor_requires_six_names():
    with pytest.raises(ValueError):
        ForceTorqueSensor(interface_names=["a/force.x"])


def test_sensor_rejects_name_and_interfaces():
    with pytest.raises(ValueError):
        ForceTorqueSensor(sensor_name="s", interface_names=[""] * 6)


def test_sensor_assign_reports_missing_interfaces():
    sensor = ForceTorqueSensor(sensor_name="other")
    assert sensor.assign_loaned_state_interfaces(
        [StateInterface("other", "force.x", 1.0)]
    ) is False
    wrench = sensor.get_values_as_message()
    assert wrench.force.x == 1.0
    assert math.isnan(wrench.torque.z)