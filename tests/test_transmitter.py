import itertools
import time

import pytest
import zmq

from jetcar.controller import Button, Controller
from jetcar.transmitter import ControlTransmitter, main

_ids = itertools.count()


class ScriptedController(Controller):
    def __init__(self, results=None, forever=False):
        super().__init__("/nonexistent/js0")
        self.results = list(results or [])
        self.forever = forever

    def read_event(self):
        if self.results:
            return self.results.pop(0)
        return self.forever


def _fields(message):
    return dict(token.split(":") for token in message.split(";") if token)


@pytest.fixture
def context():
    ctx = zmq.Context()
    yield ctx
    ctx.destroy(linger=0)


@pytest.fixture
def address():
    return f"inproc://transmitter-{next(_ids)}"


def _make(context, address, controller):
    return ControlTransmitter(address, context, controller)


def test_idle_step_sends_zero(context, address):
    tx = _make(context, address, ScriptedController(forever=True))
    message = tx.step()
    tx.close()
    assert message == "throttle:0.000000;steering:0;"


def test_step_returns_none_when_read_fails(context, address):
    tx = _make(context, address, ScriptedController([False]))
    assert tx.step() is None
    tx.close()


def test_full_right_is_clamped(context, address):
    controller = ScriptedController(forever=True)
    controller.set_normalized_axis(0, 1.0)
    tx = _make(context, address, controller)
    message = tx.step()
    tx.close()
    assert _fields(message)["steering"] == "45"
    assert tx.turn == pytest.approx(4.5)


def test_full_left_is_clamped(context, address):
    controller = ScriptedController(forever=True)
    controller.set_normalized_axis(0, -1.0)
    tx = _make(context, address, controller)
    message = tx.step()
    tx.close()
    assert _fields(message)["steering"] == "-45"
    assert tx.turn == pytest.approx(-4.5)


def test_dead_zone_centres_steering(context, address):
    controller = ScriptedController(forever=True)
    controller.set_normalized_axis(0, 0.05)
    tx = _make(context, address, controller)
    message = tx.step()
    tx.close()
    assert _fields(message)["steering"] == "0"


def test_throttle_accumulates_and_decays(context, address):
    controller = ScriptedController(forever=True)
    controller.set_normalized_axis(3, -1.0)
    tx = _make(context, address, controller)
    first = float(_fields(tx.step())["throttle"])
    controller.set_normalized_axis(3, 0.0)
    second = float(_fields(tx.step())["throttle"])
    tx.close()
    assert first == pytest.approx(0.55, abs=1e-6)
    assert 0 < second < first


def test_x_button_sets_click(context, address):
    controller = ScriptedController(forever=True)
    controller.set_button(Button.X, True)
    tx = _make(context, address, controller)
    tx.step()
    tx.close()
    assert tx.on_click is True


def test_start_transmitting_counts_steps(context, address):
    tx = _make(context, address, ScriptedController([True, True, False]))
    steps = tx.start_transmitting()
    tx.close()
    assert steps == 2


def test_init_controller_missing_device(context, address, tmp_path):
    tx = _make(context, address, Controller(str(tmp_path / "missing")))
    assert tx.init_controller() is False
    tx.close()


def test_messages_reach_subscriber(context, address):
    subscriber = context.socket(zmq.SUB)
    subscriber.setsockopt(zmq.LINGER, 0)
    subscriber.setsockopt(zmq.SUBSCRIBE, b"")
    subscriber.bind(address)
    tx = _make(context, address, ScriptedController(forever=True))

    received = None
    sent = None
    deadline = time.monotonic() + 5
    while received is None and time.monotonic() < deadline:
        sent = tx.step()
        if subscriber.poll(50):
            received = subscriber.recv_string()
    assert received == sent

    tx.close()
    messages = []
    while subscriber.poll(200):
        messages.append(subscriber.recv_string())
    subscriber.close()
    assert messages[-1] == "throttle:0;steering:0;"


def test_main_fails_without_device(tmp_path):
    code = main(
        [
            "--address",
            f"inproc://main-{next(_ids)}",
            "--device",
            str(tmp_path / "missing"),
            "--settle",
            "0",
        ]
    )
    assert code == 1