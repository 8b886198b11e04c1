"""Turns gamepad input into throttle and steering messages published over ZeroMQ."""

from __future__ import annotations

import argparse
import logging
import math
import time

import zmq

from jetcar.controller import DEFAULT_DEVICE, Button, Controller

log = logging.getLogger(__name__)

DEFAULT_ADDRESS = "tcp://127.0.0.1:5557"
INIT_MESSAGE = "init;"
STOP_MESSAGE = "throttle:0;steering:0;"
TEST_MESSAGE = "test:message;"
MAX_STEERING = 45
MAX_TURN = 4.5
_THROTTLE_AXIS = 3
_STEERING_AXIS = 0
_DEAD_ZONE = 0.1
_LINGER_MS = 1000


def _publisher(context: zmq.Context, address: str) -> zmq.Socket:
    socket = context.socket(zmq.PUB)
    socket.setsockopt(zmq.LINGER, _LINGER_MS)
    try:
        socket.connect(address)
    except zmq.ZMQError:
        socket.close()
        raise
    return socket


class ControlTransmitter:
    """Reads a controller and publishes the resulting control messages."""

    def __init__(
        self, address: str, context: zmq.Context, controller: Controller | None = None
    ) -> None:
        self.controller = controller if controller is not None else Controller()
        self.acceleration = 0.0
        self.turn = 0.0
        self.on_click = False
        self._closed = False
        self._socket = _publisher(context, address)
        log.info("control transmitter publishing to %s", address)
        self._publish(INIT_MESSAGE)

    def _publish(self, message: str) -> None:
        log.debug("publishing %s", message)
        self._socket.send_string(message)

    def init_controller(self) -> bool:
        """Open the controller device; return whether it is connected."""
        self.controller.open_device()
        connected = self.controller.connected
        log.info("controller %s", "connected" if connected else "failed to connect")
        return connected

    def step(self) -> str | None:
        """Read one event and publish the control message; None when reading fails."""
        self.on_click = False
        controller = self.controller
        if not controller.read_event():
            log.info("controller read failed")
            return None
        if controller.button(Button.X):
            self.on_click = True
            log.info("X pressed, sending stop command")
            self._publish(STOP_MESSAGE)
        for button in (Button.SELECT, Button.START, Button.HOME):
            if controller.button(button):
                log.info("%s button pressed", button.name.lower())

        self.acceleration *= 0.99
        if abs(self.turn) < 0.1:
            self.turn = 0.0
        else:
            self.turn -= self.turn * 0.15

        force = controller.axis(_THROTTLE_AXIS)
        if force != 0:
            self.acceleration -= force * 0.55
        throttle_message = f"throttle:{self.acceleration:f};"

        gear = controller.axis(_STEERING_AXIS)
        if abs(gear) > _DEAD_ZONE:
            turn = math.copysign(abs(gear) ** 1.5 * 5.0, gear)
            self.turn = max(-MAX_TURN, min(MAX_TURN, turn))
        else:
            self.turn = 0.0

        steering = max(-MAX_STEERING, min(int(self.turn * 30), MAX_STEERING))
        message = f"{throttle_message}steering:{steering};"
        self._publish(message)
        return message

    def start_transmitting(self) -> int:
        """Publish until the controller fails; return the number of steps run."""
        log.info("starting transmission loop")
        steps = 0
        while self.step() is not None:
            steps += 1
        log.info("transmission loop ended, sending zero values")
        self._publish(STOP_MESSAGE)
        return steps

    def close(self) -> None:
        """Publish zero throttle and steering, then release the socket and device."""
        if self._closed:
            return
        self._closed = True
        self._publish(STOP_MESSAGE)
        self._socket.close()
        self.controller.close()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Publish gamepad control messages.")
    parser.add_argument("--address", default=DEFAULT_ADDRESS)
    parser.add_argument("--device", default=DEFAULT_DEVICE)
    parser.add_argument("--settle", type=float, default=1.0, help="seconds after the test message")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO)

    context = zmq.Context(1)
    try:
        try:
            probe = _publisher(context, args.address)
        except zmq.ZMQError as exc:
            log.error("ZMQ test failed: %s", exc)
            return 1
        try:
            probe.send_string(TEST_MESSAGE)
            time.sleep(args.settle)
        except zmq.ZMQError as exc:
            log.error("ZMQ test failed: %s", exc)
            return 1
        finally:
            probe.close()

        transmitter = ControlTransmitter(args.address, context, Controller(args.device))
        try:
            if not transmitter.init_controller():
                log.error("failed to initialise controller")
                return 1
            transmitter.start_transmitting()
        finally:
            transmitter.close()
        return 0
    finally:
        context.term()