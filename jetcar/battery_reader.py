"""Battery voltage and charge readings from an I2C power monitor."""

from __future__ import annotations

import fcntl
import os

_I2C_SLAVE = 0x0703
_VOLTAGE_REGISTER = 0x02
_SHUNT_REGISTER = 0x01
_CHARGE_REGISTER = 0x01
_VOLTS_PER_BIT = 0.004
_SHUNT_VOLTS_PER_BIT = 0.00001


class BatteryReader:
    """Reads battery state over I2C, or from settable values in test mode."""

    I2C_BUS = 1
    ADC_ADDRESS = 0x41
    MIN_VOLTAGE = 9.0
    MAX_VOLTAGE = 12.6

    def __init__(self, test_mode: bool = False) -> None:
        self._test_mode = test_mode
        self._fd: int | None = None
        self._test_adc_values: dict[int, int] = {}
        self._test_charge_value = 0
        if test_mode:
            self._test_adc_values[_SHUNT_REGISTER] = 0
            self._test_adc_values[_VOLTAGE_REGISTER] = 3000
            return

        device = f"/dev/i2c-{self.I2C_BUS}"
        try:
            fd = os.open(device, os.O_RDWR)
        except OSError as exc:
            raise OSError(f"Failed to open I2C bus: {device}") from exc
        try:
            fcntl.ioctl(fd, _I2C_SLAVE, self.ADC_ADDRESS)
        except OSError as exc:
            os.close(fd)
            raise OSError(f"Failed to set I2C slave address: {self.ADC_ADDRESS}") from exc
        self._fd = fd

    @property
    def test_mode(self) -> bool:
        return self._test_mode

    def _transfer(self, reg: int, length: int, write_error: str, read_error: str) -> bytes:
        if self._fd is None:
            raise OSError("I2C bus is closed")
        if os.write(self._fd, bytes([reg])) != 1:
            raise OSError(write_error)
        data = os.read(self._fd, length)
        if len(data) != length:
            raise OSError(read_error)
        return data

    def read_adc(self, reg: int) -> int:
        """Read the 13-bit value of an ADC register."""
        if self._test_mode:
            return self._test_adc_values.get(reg, 0)
        high, low = self._transfer(
            reg, 2, "Write failure on the I2C bus", "Failed to read from I2C bus"
        )
        return (((high << 8) | low) >> 3) & 0x1FFF

    def read_charge(self) -> int:
        """Read the raw charge register."""
        if self._test_mode:
            return self._test_charge_value
        (value,) = self._transfer(
            _CHARGE_REGISTER,
            1,
            "Error sending I2C command.",
            "Error reading value from I2C register.",
        )
        return value

    def voltage(self) -> float:
        """Bus voltage in volts."""
        return self.read_adc(_VOLTAGE_REGISTER) * _VOLTS_PER_BIT

    def shunt(self) -> float:
        """Shunt voltage in volts, never negative."""
        value = self.read_adc(_SHUNT_REGISTER) * _SHUNT_VOLTS_PER_BIT
        return max(value, 0.0)

    def is_charging(self) -> bool:
        return 0 < self.read_charge() < 255

    def percentage(self) -> int:
        """Charge level from 1 to 100."""
        load_voltage = self.voltage() + self.shunt()
        percent = (
            (load_voltage - self.MIN_VOLTAGE) / (self.MAX_VOLTAGE - self.MIN_VOLTAGE) * 100.0
        )
        return int(min(max(percent, 1.0), 100.0))

    def set_test_adc_value(self, reg: int, value: int) -> None:
        if self._test_mode:
            self._test_adc_values[reg] = value

    def set_test_charge_value(self, value: int) -> None:
        if self._test_mode:
            self._test_charge_value = value

    def close(self) -> None:
        if self._fd is not None:
            os.close(self._fd)
            self._fd = None