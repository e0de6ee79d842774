# robocontrollers

Robot controllers that run through a lifecycle (unconfigured → inactive →
active). They reach the hardware through named state and command interfaces.
Each interface holds one float in its `value` attribute.

## Modules

- `robocontrollers.controller_base` holds the lifecycle machinery that every
  controller builds on:
  - `ControllerInterface` has `init`, `declare_parameter`, `get_parameter`,
    `set_parameter`, `assign_interfaces`, `release_interfaces`, `now`, and the
    transitions `configure`, `activate`, `deactivate` and `cleanup`. Each
    transition returns the resulting `LifecycleState`.
  - The enums are `CallbackReturn`, `ReturnType`, `LifecycleState` and
    `InterfaceConfigurationType`.
  - `StateInterface` and `CommandInterface` are the hardware handles, and
    `InterfaceConfiguration` describes which ones a controller claims.
  - `Publisher` is an in-process topic with `publish` and `subscribe`.
  - `ParameterError` is raised for a parameter that was never declared.
  - The clock can be passed to the constructor. It is a callable that returns
    seconds, and the default is `time.time`.
- `robocontrollers.forward_command` provides `ForwardCommandController`. It
  writes each command vector to the joints named by the `joints` parameter, on
  the interface named by `interface_name`. The latest command is kept in a
  `CommandBuffer`, available as `command_buffer`. Commands also arrive on the
  controller's `~/commands` topic.
- `robocontrollers.effort` provides `JointGroupEffortController`, a forward
  command controller fixed to the `effort` interface. It sets every joint to
  zero when deactivated.
- `robocontrollers.force_torque` provides `ForceTorqueSensor`, which reads six
  force/torque axes, and `ForceTorqueSensorBroadcaster`. The broadcaster
  publishes a `WrenchStamped` on `~/wrench` at every update. An axis without an
  interface reads as NaN.
- `robocontrollers.diff_drive` provides `DiffDriveController`:
  - It takes `TwistStamped` commands on `~/cmd_vel`, or `Twist` commands on
    `~/cmd_vel_unstamped`.
  - It applies the linear and angular speed limits and writes the left and
    right wheel velocities.
  - It integrates odometry from position feedback, velocity feedback or the
    commands (open loop).
  - At `publish_rate` it publishes an `OdometryMessage` on `/odom`, and a list
    holding one `TransformStamped` on `/tf`.
  - A command older than `cmd_vel_timeout` seconds brakes the base.
- `robocontrollers.odometry` provides `Odometry` and `RollingMeanAccumulator`.
- `robocontrollers.speed_limiter` provides `SpeedLimiter`. Its methods
  `limit`, `limit_velocity`, `limit_acceleration` and `limit_jerk` each return
  a `LimitResult`, which holds the limited value and the limiting factor.
- `robocontrollers.diff_drive_params` holds the message dataclasses, the
  `WheelParams` and `OdometryParams` settings, `quaternion_from_yaw`, and the
  helpers that declare and read the differential-drive parameters.

## Installation

```
pip install .
```

## Example

```python
from robocontrollers.controller_base import CommandInterface, LifecycleState
from robocontrollers.forward_command import ForwardCommandController

joints = [CommandInterface("joint1", "position", 1.1),
          CommandInterface("joint2", "position", 2.1)]

controller = ForwardCommandController()
controller.init("forward_command_controller")
controller.assign_interfaces(joints, [])
controller.set_parameter("joints", ["joint1", "joint2"])
controller.set_parameter("interface_name", "position")

assert controller.configure() is LifecycleState.INACTIVE
assert controller.activate() is LifecycleState.ACTIVE

controller.command_buffer.write([10.0, 20.0])
controller.update(0.0, 0.01)
print([j.value for j in joints])  # [10.0, 20.0]

# Commands can also be published on the controller's topic.
controller.topics["/forward_command_controller/commands"].publish([5.0, 6.0])
controller.update(0.01, 0.01)
print([j.value for j in joints])  # [5.0, 6.0]
```

The speed limiter can be used on its own:

```python
from robocontrollers.speed_limiter import SpeedLimiter

limiter = SpeedLimiter(has_velocity_limits=True, max_velocity=1.0)
v, factor = limiter.limit_velocity(2.0)   # v == 1.0, factor == 0.5
```

## What it does not do

Topics are plain in-process `Publisher` objects, kept in each controller's
`topics` dictionary. Nothing is sent over a network, and no messages are
serialised. The package has no controller manager and no plugin loading, so
your own code creates, drives and updates the controllers. It also provides no
command-line program.

## Tests

```
pip install .[test]
pytest
```