"""Linux joystick reader that keeps the latest axis and button state."""

from __future__ import annotations

import fcntl
import logging
import os
import select
import struct
import time
from enum import IntEnum

log = logging.getLogger(__name__)

DEFAULT_DEVICE = "/dev/input/js0"
MAX_AXES = 8
MAX_BUTTONS = 14
MAX_AXIS_VALUE = 32767

# struct js_event: u32 time, s16 value, u8 type, u8 number
_EVENT = struct.Struct("=IhBB")
_NAME_LENGTH = 128
# JSIOCGNAME(128): _IOC(_IOC_READ, 'j', 0x13, 128)
_JSIOCGNAME = (2 << 30) | (_NAME_LENGTH << 16) | (ord("j") << 8) | 0x13
_IDLE_SLEEP = 0.01
_DEBUG_EVERY = 100


class Button(IntEnum):
    """Button numbers reported by the gamepad."""

    A = 0
    B = 1
    X = 3
    Y = 4
    LEFT_ONE = 6
    RIGHT_ONE = 7
    LEFT_TWO = 8
    RIGHT_TWO = 9
    SELECT = 10
    START = 11
    HOME = 12


class EventType(IntEnum):
    """Joystick event types."""

    BUTTON = 0x01
    AXIS = 0x02
    INIT = 0x80


class Controller:
    """State of a joystick device read through the Linux joystick API."""

    def __init__(self, device: str = DEFAULT_DEVICE) -> None:
        self.device = device
        self.name = "Team06"
        self.quit = False
        self._event = False
        self._fd: int | None = None
        self._raw_axes = [0] * MAX_AXES
        self._normalized_axes = [0.0] * MAX_AXES
        self._buttons = [0] * MAX_BUTTONS
        self._polls = 0

    @property
    def connected(self) -> bool:
        """Whether the device file is open."""
        return self._fd is not None

    @property
    def event(self) -> bool:
        """Whether the last read produced an axis or button event."""
        return self._event

    def open_device(self) -> None:
        """Open the device; on failure the controller stays disconnected."""
        self.close()
        try:
            self._fd = os.open(self.device, os.O_RDONLY)
        except OSError as exc:
            log.error("cannot open device %s: %s", self.device, exc)
            self._fd = None
            return
        log.info("joystick fd %d", self._fd)
        try:
            raw = fcntl.ioctl(self._fd, _JSIOCGNAME, bytes(_NAME_LENGTH))
        except OSError as exc:
            log.error("cannot read joystick name: %s", exc)
            return
        self.name = raw.split(b"\0", 1)[0].decode(errors="replace")
        log.info("joystick %s opened", self.name)

    def close(self) -> None:
        """Close the device if it is open."""
        if self._fd is not None:
            os.close(self._fd)
            self._fd = None
            log.info("joystick closed")

    def read_event(self) -> bool:
        """Poll the device for one event; return False when reading fails."""
        self._event = False
        if self._fd is None:
            log.error("joystick is not open")
            return False
        try:
            ready, _, _ = select.select([self._fd], [], [], 0)
        except (OSError, ValueError) as exc:
            log.error("select error: %s", exc)
            return False
        if self._polls % _DEBUG_EVERY == 0:
            log.debug("controller select returned %d", len(ready))
        self._polls += 1

        if not ready:
            time.sleep(_IDLE_SLEEP)
            return True

        try:
            data = os.read(self._fd, _EVENT.size)
        except OSError as exc:
            log.error("error reading joystick event: %s", exc)
            return False
        if len(data) == _EVENT.size:
            _, value, event_type, number = _EVENT.unpack(data)
            log.debug("event type %d number %d value %d", event_type, number, value)
            self.apply_event(event_type, number, value)
        return True

    def apply_event(self, event_type: int, number: int, value: int) -> bool:
        """Update state from one event; return whether it was an axis or button event."""
        self._event = False
        if event_type == EventType.AXIS:
            if number < MAX_AXES:
                self._raw_axes[number] = value
                self._normalized_axes[number] = _normalize(value)
            self._event = True
        elif event_type == EventType.BUTTON:
            if number < MAX_BUTTONS:
                self._buttons[number] = value
            if number == Button.SELECT and value == 1:
                self.quit = True
                log.info("select pressed, setting quit flag")
            self._event = True
        else:
            log.debug("unknown event type %d", event_type)
        return self._event

    def axis(self, index: int) -> float:
        """Normalized value of an axis, 0.0 for an unknown axis."""
        if 0 <= index < MAX_AXES:
            return self._normalized_axes[index]
        return 0.0

    def raw_axis(self, index: int) -> int:
        """Raw value of an axis, 0 for an unknown axis."""
        if 0 <= index < MAX_AXES:
            return self._raw_axes[index]
        return 0

    def button(self, index: int) -> bool:
        """Whether a button is pressed; False for an unknown button."""
        if 0 <= index < MAX_BUTTONS:
            return self._buttons[index] == 1
        return False

    def set_button(self, index: int, pressed: bool) -> None:
        if 0 <= index < MAX_BUTTONS:
            self._buttons[index] = 1 if pressed else 0

    def set_raw_axis(self, index: int, value: int) -> None:
        if 0 <= index < MAX_AXES:
            self._raw_axes[index] = value
            self._normalized_axes[index] = _normalize(value)

    def set_normalized_axis(self, index: int, value: float) -> None:
        if 0 <= index < MAX_AXES:
            self._normalized_axes[index] = value


def _normalize(value: int) -> float:
    return value / MAX_AXIS_VALUE