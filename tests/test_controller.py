import struct

import pytest

from jetcar.controller import (
    MAX_AXES,
    MAX_AXIS_VALUE,
    MAX_BUTTONS,
    Button,
    Controller,
    EventType,
)


def _event(event_type, number, value):
    return struct.pack("=IhBB", 0, value, event_type, number)


@pytest.fixture
def controller():
    ctrl = Controller()
    yield ctrl
    ctrl.close()


def test_initial_state(controller):
    assert controller.connected is False
    assert controller.quit is False
    assert controller.event is False
    assert [controller.axis(i) for i in range(MAX_AXES)] == [0.0] * MAX_AXES
    assert not any(controller.button(i) for i in range(MAX_BUTTONS))


def test_axis_event_normalizes(controller):
    assert controller.apply_event(EventType.AXIS, 3, MAX_AXIS_VALUE) is True
    assert controller.raw_axis(3) == MAX_AXIS_VALUE
    assert controller.axis(3) == pytest.approx(1.0)
    controller.apply_event(EventType.AXIS, 0, -MAX_AXIS_VALUE)
    assert controller.axis(0) == pytest.approx(-1.0)


def test_axis_event_out_of_range_still_counts(controller):
    assert controller.apply_event(EventType.AXIS, MAX_AXES, 100) is True
    assert [controller.raw_axis(i) for i in range(MAX_AXES)] == [0] * MAX_AXES


def test_button_event(controller):
    assert controller.apply_event(EventType.BUTTON, Button.X, 1) is True
    assert controller.button(Button.X) is True
    controller.apply_event(EventType.BUTTON, Button.X, 0)
    assert controller.button(Button.X) is False


def test_select_sets_quit(controller):
    controller.apply_event(EventType.BUTTON, Button.SELECT, 1)
    assert controller.quit is True
    assert controller.button(Button.SELECT) is True


def test_unknown_event_type(controller):
    assert controller.apply_event(EventType.BUTTON | EventType.INIT, 1, 1) is False
    assert controller.event is False
    assert controller.button(1) is False


def test_out_of_range_reads(controller):
    assert controller.axis(-1) == 0.0
    assert controller.axis(MAX_AXES) == 0.0
    assert controller.raw_axis(MAX_AXES) == 0
    assert controller.button(-1) is False
    assert controller.button(MAX_BUTTONS) is False


def test_setters_round_trip(controller):
    controller.set_button(Button.START, True)
    assert controller.button(Button.START) is True
    controller.set_button(Button.START, False)
    assert controller.button(Button.START) is False

    controller.set_raw_axis(2, -1234)
    assert controller.raw_axis(2) == -1234
    assert controller.axis(2) == pytest.approx(-1234 / MAX_AXIS_VALUE)

    controller.set_normalized_axis(4, 0.25)
    assert controller.axis(4) == 0.25
    assert controller.raw_axis(4) == 0


def test_setters_ignore_out_of_range(controller):
    controller.set_button(MAX_BUTTONS, True)
    controller.set_raw_axis(MAX_AXES, 5)
    controller.set_normalized_axis(-1, 0.5)
    assert not any(controller.button(i) for i in range(MAX_BUTTONS))
    assert [controller.axis(i) for i in range(MAX_AXES)] == [0.0] * MAX_AXES


def test_open_missing_device(tmp_path):
    ctrl = Controller(str(tmp_path / "missing"))
    ctrl.open_device()
    assert ctrl.connected is False
    assert ctrl.read_event() is False


def test_read_events_from_device_file(tmp_path):
    device = tmp_path / "js0"
    device.write_bytes(
        _event(EventType.AXIS, 3, MAX_AXIS_VALUE) + _event(EventType.BUTTON, Button.A, 1)
    )
    ctrl = Controller(str(device))
    ctrl.open_device()
    try:
        assert ctrl.connected is True
        assert ctrl.read_event() is True
        assert ctrl.event is True
        assert ctrl.raw_axis(3) == MAX_AXIS_VALUE
        assert ctrl.read_event() is True
        assert ctrl.button(Button.A) is True
        assert ctrl.read_event() is True
        assert ctrl.event is False
    finally:
        ctrl.close()
    assert ctrl.connected is False