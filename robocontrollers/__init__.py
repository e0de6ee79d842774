"""Lifecycle-managed robot controllers: differential drive, command forwarding, joint effort and force/torque broadcasting."""

__version__ = "0.1.0"