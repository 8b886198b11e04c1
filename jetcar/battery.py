"""Battery sensor built on a battery reader."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Protocol


class _Reader(Protocol):
    def percentage(self) -> int: ...

    def is_charging(self) -> bool: ...


@dataclass
class SensorData:
    """One named sensor value with its previous value and change flag."""

    name: str
    critical: bool
    value: int = 0
    old_value: int = 0
    updated: bool = False
    timestamp: float = field(default_factory=time.monotonic)


class Battery:
    """Battery level and charging state, smoothed to move only one way."""

    def __init__(self, reader: _Reader) -> None:
        self.reader = reader
        self.name = "battery"
        self._sensor_data = {
            "battery": SensorData("battery", False),
            "charging": SensorData("charging", False),
        }

    def update_sensor_data(self) -> None:
        """Read the reader and refresh the change flags."""
        self.read_sensor()
        self.check_updated()

    def check_updated(self) -> None:
        for sensor in self._sensor_data.values():
            sensor.updated = sensor.old_value != sensor.value

    def read_sensor(self) -> None:
        """Take a reading; while charging the level only rises, otherwise it only falls."""
        battery_data = self._sensor_data["battery"]
        charging_data = self._sensor_data["charging"]
        old_battery = battery_data.value
        old_charging = charging_data.value
        battery = self.reader.percentage()
        charging = self.reader.is_charging()

        battery_data.old_value = old_battery
        charging_data.old_value = old_charging
        battery_data.value = battery
        charging_data.value = int(charging)

        if not old_battery:
            return
        if charging:
            battery_data.value = max(battery, old_battery)
        else:
            battery_data.value = min(battery, old_battery)

        now = time.monotonic()
        battery_data.timestamp = now
        charging_data.timestamp = now

    def sensor_data(self) -> dict[str, SensorData]:
        """A new mapping of the sensor entries; the entries themselves are shared."""
        return dict(self._sensor_data)

    def charging(self) -> bool:
        return self._sensor_data["charging"].value > 0