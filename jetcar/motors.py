"""Rear motor driver on a PCA9685 PWM controller reached over I2C."""

from __future__ import annotations

import fcntl
import logging
import math
import os
import time
from typing import Protocol

log = logging.getLogger(__name__)

I2C_SLAVE = 0x0703
DEFAULT_I2C_DEVICE = "/dev/i2c-1"
PWM_MAX = 4095
SPEED_LIMIT = 100
_CHANNELS = 9
_OSCILLATOR_HZ = 25_000_000.0
_MOTOR_FREQUENCY_HZ = 60


class _Bus(Protocol):
    def write(self, data: bytes) -> int: ...

    def read(self, length: int) -> bytes: ...

    def close(self) -> None: ...


class _I2CBus:
    """An I2C character device bound to one slave address."""

    def __init__(self, device: str, address: int, address_error: str) -> None:
        try:
            fd = os.open(device, os.O_RDWR)
        except OSError as exc:
            raise OSError(f"Error open I2C: {device}") from exc
        try:
            fcntl.ioctl(fd, I2C_SLAVE, address)
        except OSError as exc:
            os.close(fd)
            raise OSError(address_error) from exc
        self._fd: int | None = fd

    def write(self, data: bytes) -> int:
        if self._fd is None:
            raise OSError("I2C bus is closed")
        return os.write(self._fd, data)

    def read(self, length: int) -> bytes:
        if self._fd is None:
            raise OSError("I2C bus is closed")
        return os.read(self._fd, length)

    def close(self) -> None:
        if self._fd is not None:
            os.close(self._fd)
            self._fd = None


def _write_register(bus: _Bus | None, reg: int, value: int) -> None:
    if bus is None:
        raise OSError("I2C bus is not open")
    if bus.write(bytes([reg & 0xFF, value & 0xFF])) != 2:
        raise OSError("Error writing to I2C device.")


def _read_register(bus: _Bus | None, reg: int) -> int:
    if bus is None:
        raise OSError("I2C bus is not open")
    if bus.write(bytes([reg & 0xFF])) != 1:
        raise OSError("Error sending register to I2C device.")
    data = bus.read(1)
    if len(data) != 1:
        raise OSError("Error reading register from I2C device.")
    return data[0]


class BackMotors:
    """Drives the two rear motors through PWM channels of a PCA9685."""

    def __init__(self, device: str = DEFAULT_I2C_DEVICE, address: int = 0x60) -> None:
        self.device = device
        self.address = address
        self.bus: _Bus | None = None
        self.speed = 0

    @property
    def connected(self) -> bool:
        return self.bus is not None

    def open_i2c_bus(self) -> None:
        """Open the I2C device and select the motor controller; raise OSError on failure."""
        self.close()
        self.bus = _I2CBus(self.device, self.address, "Error setting motor I2C address.")
        log.info("motor controller opened on %s", self.device)

    def init_motors(self) -> bool:
        """Configure the controller for 60 Hz PWM with auto-increment."""
        try:
            self.write_byte_data(0x00, 0x20)
            old_mode = self.read_byte_data(0x00)
            prescale = math.floor(_OSCILLATOR_HZ / 4096.0 / _MOTOR_FREQUENCY_HZ - 1)
            new_mode = (old_mode & 0x7F) | 0x10
            self.write_byte_data(0x00, new_mode)
            self.write_byte_data(0xFE, prescale)
            self.write_byte_data(0x00, old_mode)
            time.sleep(0.005)
            self.write_byte_data(0x00, old_mode | 0xA1)
        except OSError as exc:
            log.error("motor initialisation failed: %s", exc)
            return False
        return True

    def set_motor_pwm(self, channel: int, value: int) -> bool:
        """Set a channel's off count, clamped to 0..4095; return whether it was written."""
        value = min(max(value, 0), PWM_MAX)
        base = 4 * channel
        try:
            self.write_byte_data(0x06 + base, 0)
            self.write_byte_data(0x07 + base, 0)
            self.write_byte_data(0x08 + base, value & 0xFF)
            self.write_byte_data(0x09 + base, value >> 8)
        except OSError as exc:
            log.error("motor PWM failed: %s", exc)
            return False
        return True

    def set_speed(self, speed: int) -> None:
        """Run both motors at a speed from -100 (full reverse) to 100 (full forward)."""
        speed = max(-SPEED_LIMIT, min(SPEED_LIMIT, int(speed)))
        self.speed = speed
        pwm = int(abs(speed) / 100.0 * PWM_MAX)
        if speed > 0:
            settings = {0: pwm, 1: 0, 2: pwm, 5: pwm, 6: 0, 7: pwm}
        elif speed < 0:
            settings = {0: pwm, 1: pwm, 2: 0, 5: 0, 6: pwm, 7: pwm}
        else:
            settings = dict.fromkeys(range(_CHANNELS), 0)
        for channel, value in settings.items():
            self.set_motor_pwm(channel, value)

    def write_byte_data(self, reg: int, value: int) -> None:
        _write_register(self.bus, reg, value)

    def read_byte_data(self, reg: int) -> int:
        return _read_register(self.bus, reg)

    def close(self) -> None:
        if self.bus is not None:
            self.bus.close()
            self.bus = None