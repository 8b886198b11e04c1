"""Gamepad control publishing over ZeroMQ, and motor, servo, battery and CAN handling for a model car."""

__version__ = "1.0.0"