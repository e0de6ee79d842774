[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "robocontrollers"
version = "0.1.0"
description = "Lifecycle-managed robot controllers: differential drive, command forwarding, joint effort and force/torque broadcasting."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "robotics",
    "controllers",
    "differential-drive",
    "odometry",
    "force-torque",
    "speed-limiter",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["robocontrollers"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
