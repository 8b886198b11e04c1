"""Front steering servo on a PCA9685 PWM controller reached over I2C."""

from __future__ import annotations

import logging
import time

from jetcar.motors import DEFAULT_I2C_DEVICE, _Bus, _I2CBus, _read_register, _write_register

log = logging.getLogger(__name__)

_SETTLE_DELAY = 0.1


class FServo:
    """Steers the front wheels by setting the servo pulse width."""

    MAX_ANGLE = 90
    CENTER_PWM = 307
    LEFT_PWM = 205
    RIGHT_PWM = 409
    STEERING_CHANNEL = 0

    def __init__(self, device: str = DEFAULT_I2C_DEVICE, address: int = 0x40) -> None:
        self.device = device
        self.address = address
        self.bus: _Bus | None = None
        self.current_angle = 0

    @property
    def connected(self) -> bool:
        return self.bus is not None

    def open_i2c_bus(self) -> None:
        """Open the I2C device and select the servo controller; raise OSError on failure."""
        self.close()
        self.bus = _I2CBus(self.device, self.address, "Error setting servo I2C address.")
        log.info("servo controller opened on %s", self.device)

    def init_servo(self) -> bool:
        """Reset the controller and configure it for about 50 Hz."""
        sequence = [(0x00, 0x06), (0x00, 0x10), (0xFE, 0x79), (0x01, 0x04), (0x00, 0x20)]
        try:
            for reg, value in sequence:
                self.write_byte_data(reg, value)
                time.sleep(_SETTLE_DELAY)
        except OSError as exc:
            log.error("servo initialisation failed: %s", exc)
            return False
        return True

    def set_servo_pwm(self, channel: int, on_value: int, off_value: int) -> bool:
        """Set a channel's on and off counts; return whether they were written."""
        base = 4 * channel
        try:
            self.write_byte_data(0x06 + base, on_value & 0xFF)
            self.write_byte_data(0x07 + base, on_value >> 8)
            self.write_byte_data(0x08 + base, off_value & 0xFF)
            self.write_byte_data(0x09 + base, off_value >> 8)
        except OSError as exc:
            log.error("servo PWM failed: %s", exc)
            return False
        return True

    def set_steering(self, angle: int) -> None:
        """Steer to an angle, clamped to -MAX_ANGLE..MAX_ANGLE degrees."""
        angle = max(-self.MAX_ANGLE, min(self.MAX_ANGLE, int(angle)))
        fraction = angle / self.MAX_ANGLE
        if angle < 0:
            pwm = int(self.CENTER_PWM + fraction * (self.CENTER_PWM - self.LEFT_PWM))
        elif angle > 0:
            pwm = int(self.CENTER_PWM + fraction * (self.RIGHT_PWM - self.CENTER_PWM))
        else:
            pwm = self.CENTER_PWM
        self.set_servo_pwm(self.STEERING_CHANNEL, 0, pwm)
        self.current_angle = angle

    def write_byte_data(self, reg: int, value: int) -> None:
        _write_register(self.bus, reg, value)

    def read_byte_data(self, reg: int) -> int:
        return _read_register(self.bus, reg)

    def close(self) -> None:
        if self.bus is not None:
            self.bus.close()
            self.bus = None