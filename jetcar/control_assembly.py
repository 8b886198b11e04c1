"""Applies throttle and steering commands received over ZeroMQ."""

from __future__ import annotations

import logging
import re
import threading
from typing import Protocol

import zmq

from jetcar.control_logger import ControlLogger
from jetcar.motors import BackMotors
from jetcar.servo import FServo

log = logging.getLogger(__name__)

DEFAULT_LOG_PATH = "control_updates.log"
INIT_MESSAGE = "init;"
_RECEIVE_TIMEOUT_MS = 100
_LOOP_DELAY = 0.05
_NUMBER = re.compile(r"\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


class _Motors(Protocol):
    def open_i2c_bus(self) -> None: ...

    def init_motors(self) -> bool: ...

    def set_speed(self, speed: int) -> None: ...


class _Servo(Protocol):
    def open_i2c_bus(self) -> None: ...

    def init_servo(self) -> bool: ...

    def set_steering(self, angle: int) -> None: ...


def parse_message(message: str) -> dict[str, float]:
    """Split "key:value;key:value;" into a mapping; unparsable values become 0.0."""
    values: dict[str, float] = {}
    for token in message.split(";"):
        if not token:
            continue
        key, _, rest = token.partition(":")
        match = _NUMBER.match(rest)
        values[key] = float(match.group()) if match else 0.0
    return values


class ControlAssembly:
    """Listens for control messages and drives the motors and the steering servo."""

    def __init__(
        self,
        address: str,
        context: zmq.Context,
        back_motors: _Motors | None = None,
        servo: _Servo | None = None,
        log_path: str = DEFAULT_LOG_PATH,
    ) -> None:
        self.back_motors: _Motors = back_motors if back_motors is not None else BackMotors()
        self.servo: _Servo = servo if servo is not None else FServo()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._closed = False

        self._socket = context.socket(zmq.SUB)
        self._socket.setsockopt(zmq.LINGER, 0)
        self._socket.setsockopt(zmq.SUBSCRIBE, b"")
        try:
            self._socket.bind(address)
        except zmq.ZMQError:
            self._socket.close()
            raise
        log.info("control assembly listening on %s", address)

        self.logger = ControlLogger(log_path)
        try:
            self.back_motors.open_i2c_bus()
            self.servo.open_i2c_bus()
            if not self.back_motors.init_motors():
                raise RuntimeError("Failed to initialize BackMotors")
            if not self.servo.init_servo():
                raise RuntimeError("Failed to initialize FServo")
        except Exception as exc:
            log.error("error during initialisation: %s", exc)
            self.logger.close()
            self._socket.close()
            raise
        log.info("motors and servo initialised")

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the receiver thread."""
        if self._closed:
            raise RuntimeError("control assembly is closed")
        if self.running:
            raise RuntimeError("control assembly is already running")
        self._stop.clear()
        self._thread = threading.Thread(target=self.receive_messages, daemon=True)
        self._thread.start()
        log.info("message receiver thread started")

    def stop(self) -> None:
        """Stop the receiver thread and wait for it."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
            log.info("message receiver thread joined")

    def receive_messages(self) -> None:
        """Handle incoming messages until stopped."""
        while not self._stop.is_set():
            message = self._receive()
            if message:
                log.debug("received control message: %s", message)
                self.handle_message(message)
            else:
                log.debug("received empty message")
            self._stop.wait(_LOOP_DELAY)

    def _receive(self) -> str:
        if self._socket.poll(_RECEIVE_TIMEOUT_MS):
            return self._socket.recv().decode("utf-8", errors="replace")
        return ""

    def handle_message(self, message: str) -> None:
        """Apply the steering and throttle a message carries and log the update."""
        values = parse_message(message)
        if message == INIT_MESSAGE:
            log.info("init message received, resetting to zero")
            self.servo.set_steering(0)
            self.back_motors.set_speed(0)
            self.logger.log_control_update("init", 0, 0)
            return

        steering = 0.0
        throttle = 0.0
        if "steering" in values:
            steering = values["steering"]
            self.servo.set_steering(int(steering))
        if "throttle" in values:
            throttle = values["throttle"]
            self.back_motors.set_speed(int(throttle))
        self.logger.log_control_update(message, steering, throttle)

    def close(self) -> None:
        """Stop listening, zero the motors and steering, and release resources."""
        if self._closed:
            return
        self._closed = True
        self.stop()
        self.back_motors.set_speed(0)
        self.servo.set_steering(0)
        log.info("motor speed and steering set to 0")
        self.logger.close()
        self._socket.close()