# jetcar

Driving a small model car from a gamepad. The package has two sides:

- **The controller side** (`jetcar.controller`, `jetcar.transmitter`) reads a
  Linux joystick device. It turns stick positions into throttle and steering
  values and publishes them over ZeroMQ as short text messages such as
  `throttle:12.500000;steering:-30;`.
- **The car side** (`jetcar.control_assembly`, `jetcar.motors`, `jetcar.servo`,
  `jetcar.control_logger`, `jetcar.battery_reader`, `jetcar.battery`,
  `jetcar.can_reader`) subscribes to those messages. It drives the rear motors
  and the steering servo through PCA9685 PWM boards on the I2C bus and logs
  every control update to a file. It can also read the battery monitor and an
  MCP2515 CAN controller.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Running the controller

```
jetcar-controller
```

Options:

- `--address` is the ZeroMQ endpoint to connect to (default `tcp://127.0.0.1:5557`).
- `--device` is the joystick device (default `/dev/input/js0`).
- `--settle` is how many seconds to wait after the test message (default `1.0`).

The command first publishes `test:message;` and waits. It then publishes
`init;` and opens the joystick. If the joystick cannot be opened, it exits
with status 1. Otherwise it publishes one throttle and steering message per
loop pass until the joystick can no longer be read. On the way out it
publishes `throttle:0;steering:0;`.

Controls:

- right stick, vertical axis: the throttle value moves with the stick. It
  decays by 1% on every pass.
- left stick, horizontal axis: steering. There is a dead zone below 0.1, the
  response is exponential, and the angle is limited to ±45.
- X button: publishes `throttle:0;steering:0;` at once, before the regular
  message of that pass.

`ControlTransmitter.step()` runs a single pass and returns the message it
published, or `None` if the read failed. This makes it possible to drive the
transmitter from your own loop.

## Using the library

### Joystick state

```python
from jetcar.controller import Button, Controller

pad = Controller("/dev/input/js0")
pad.set_raw_axis(0, 16384)
pad.axis(0)            # about 0.5: raw value divided by 32767
pad.button(Button.X)   # False
pad.apply_event(0x01, Button.SELECT, 1)
pad.quit               # True: pressing SELECT sets the quit flag
```

`open_device()` opens the device and `read_event()` polls it without
blocking. `close()` releases it. Axes outside 0–7 and buttons outside 0–13
read as zero or not pressed.

### Battery

```python
from jetcar.battery_reader import BatteryReader
from jetcar.battery import Battery

reader = BatteryReader(test_mode=True)
reader.set_test_adc_value(0x02, 3000)   # about 12.0 V
reader.voltage()
reader.percentage()                     # clamped to 1..100 between 9.0 V and 12.6 V
reader.set_test_charge_value(100)
reader.is_charging()                    # True for values 1..254

battery = Battery(reader)
battery.update_sensor_data()
battery.sensor_data()["battery"].value
battery.charging()
```

Once `Battery` holds a non-zero level, the level only goes up while the
battery is charging and only goes down while it is not. Each `SensorData`
entry keeps its previous value and an `updated` flag.

Without `test_mode`, `BatteryReader` opens `/dev/i2c-1` at address `0x41`. It
raises `OSError` if the bus or the address cannot be set.

### CAN bus

```python
from jetcar.can_reader import CanReader

can = CanReader(test_mode=True)
can.init()
can.set_test_receive_data(bytes([0x11, 0x22]), 0x123)
can.receive()      # b"\x11\x22"
can.can_id()       # 0x123
can.send(0x456, bytes([0xAA, 0xBB]))   # True; frames longer than 8 bytes give False
```

Without `test_mode`, `CanReader` talks to `/dev/spidev0.0` at 10 MHz.
`init()` sets up 500 kbps, accepts every frame and switches to normal mode.

### Motors and servo

`BackMotors` maps a speed from -100 to 100 onto the PWM channels of both rear
motors. Values outside that range are clamped, and a speed of 0 zeroes channels
0–8. `FServo` maps a steering angle, clamped to ±90, onto the servo pulse width
of channel 0. Both open `/dev/i2c-1` by default, using addresses `0x60` and
`0x40`, and raise `OSError` if the bus cannot be opened.

### Control assembly

`ControlAssembly` binds a ZeroMQ SUB socket to an address. It opens and
initialises the motors and servo, and raises if either fails. After
`start()`, a background thread applies incoming messages. `init;` resets
steering and speed to zero. Any other message sets whatever `steering` and
`throttle` values it carries. Every update is written through `ControlLogger`
(by default to `control_updates.log`). `close()` stops the thread, zeroes
speed and steering, and closes the log.

```python
from jetcar.control_assembly import parse_message

parse_message("throttle:30;steering:-15;")
# {"throttle": 30.0, "steering": -15.0}
```

`ControlLogger` can also be used on its own as a context manager. It writes
session start and end markers, and each line carries a timestamp of the form
`YYYY-MM-DD HH:MM:SS.mmm`.

## What the package does not do

- The only command is `jetcar-controller`. There is no command that starts
  the car side; to run it, create a `ControlAssembly` from your own code.
- Battery and CAN readings are available only through the classes above.
  Nothing in the package publishes them over the network or collects them
  into a sensor feed.