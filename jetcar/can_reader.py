"""MCP2515 CAN controller over SPI, with a register-backed test mode."""

from __future__ import annotations

import fcntl
import logging
import os
import struct
import time
from array import array

log = logging.getLogger(__name__)

# SPI instructions
CAN_RESET = 0xC0
CAN_READ = 0x03
CAN_WRITE = 0x02
CAN_RTS_TXB0 = 0x81
CAN_RD_STATUS = 0xA0

# Registers
RXF0SIDH = 0x00
RXF0SIDL = 0x01
RXM0SIDH = 0x20
RXM0SIDL = 0x21
CNF3 = 0x28
CNF2 = 0x29
CNF1 = 0x2A
CANINTE = 0x2B
CANINTF = 0x2C
CANSTAT = 0x0E
CANCTRL = 0x0F
TXB0CTRL = 0x30
TXB0SIDH = 0x31
TXB0SIDL = 0x32
TXB0EID8 = 0x33
TXB0EID0 = 0x34
TXB0DLC = 0x35
TXB0D0 = 0x36
RXB0CTRL = 0x60
RXB0SIDH = 0x61
RXB0SIDL = 0x62
RXB0DLC = 0x65
RXB0D0 = 0x66

CAN_500KBPS = 0x00
MAX_DATA_LENGTH = 8

_SPI_MODE_0 = 0
_SPI_BITS = 8
_SPI_SPEED_HZ = 10_000_000
# struct spi_ioc_transfer
_TRANSFER = struct.Struct("=QQIIHBBBBBB")


def _iow(number: int, size: int) -> int:
    return (1 << 30) | (size << 16) | (ord("k") << 8) | number


_SPI_IOC_WR_MODE = _iow(1, 1)
_SPI_IOC_WR_BITS_PER_WORD = _iow(3, 1)
_SPI_IOC_WR_MAX_SPEED_HZ = _iow(4, 4)
_SPI_IOC_MESSAGE_1 = _iow(0, _TRANSFER.size)

_DEFAULT_TEST_REGISTERS = {CANCTRL: 0x00, CANSTAT: 0x00, RXB0CTRL: 0x60, CANINTF: 0x00}


class CanReader:
    """Sends and receives CAN frames through an MCP2515 on SPI."""

    SPI_DEVICE = "/dev/spidev0.0"

    def __init__(self, test_mode: bool = False) -> None:
        self._test_mode = test_mode
        self.debug = False
        self._fd: int | None = None
        self._test_registers: dict[int, int] = {}
        self._test_should_receive = False
        self._test_receive_data = b""
        self._test_can_id = 0
        if test_mode:
            self._test_registers.update(_DEFAULT_TEST_REGISTERS)
            return
        try:
            self.init_spi()
        except OSError as exc:
            log.error("error initialising CAN reader: %s", exc)

    @property
    def test_mode(self) -> bool:
        return self._test_mode

    def init_spi(self) -> bool:
        """Open the SPI device in mode 0, 8 bits, 10 MHz; raise OSError on failure."""
        if self._test_mode:
            return True
        try:
            fd = os.open(self.SPI_DEVICE, os.O_RDWR)
        except OSError as exc:
            raise OSError(f"Failed to open SPI device: {self.SPI_DEVICE}") from exc
        settings = [
            (_SPI_IOC_WR_MODE, struct.pack("=B", _SPI_MODE_0), "Error setting SPI mode"),
            (_SPI_IOC_WR_BITS_PER_WORD, struct.pack("=B", _SPI_BITS), "Error setting bits per word"),
            (_SPI_IOC_WR_MAX_SPEED_HZ, struct.pack("=I", _SPI_SPEED_HZ), "Error setting SPI speed"),
        ]
        for request, argument, message in settings:
            try:
                fcntl.ioctl(fd, request, argument)
            except OSError as exc:
                os.close(fd)
                raise OSError(message) from exc
        self._fd = fd
        return True

    def _transfer(self, tx: bytes, receive: bool = False) -> bytes | None:
        """Run one full-duplex SPI transfer; None when it fails."""
        if self._fd is None:
            return None
        tx_buffer = array("B", tx)
        rx_buffer = array("B", bytes(len(tx)))
        request = _TRANSFER.pack(
            tx_buffer.buffer_info()[0],
            rx_buffer.buffer_info()[0] if receive else 0,
            len(tx),
            _SPI_SPEED_HZ,
            0,
            _SPI_BITS,
            0, 0, 0, 0, 0,
        )
        try:
            fcntl.ioctl(self._fd, _SPI_IOC_MESSAGE_1, request)
        except OSError:
            return None
        return rx_buffer.tobytes()

    def read_byte(self, addr: int) -> int:
        """Read one register; 0 when the transfer fails."""
        if self._test_mode:
            return self._test_registers.get(addr, 0)
        rx = self._transfer(bytes([CAN_READ, addr & 0xFF, 0]), receive=True)
        if rx is None:
            log.error("SPI transfer failed")
            return 0
        return rx[2]

    def write_byte(self, addr: int, data: int) -> None:
        if self._test_mode:
            self._test_registers[addr] = data & 0xFF
            return
        if self._transfer(bytes([CAN_WRITE, addr & 0xFF, data & 0xFF])) is None:
            log.error("SPI transfer failed")

    def reset(self) -> None:
        """Reset the controller, or restore the default registers in test mode."""
        if self._test_mode:
            self._test_registers.clear()
            self._test_registers.update(_DEFAULT_TEST_REGISTERS)
            return
        if self._transfer(bytes([CAN_RESET])) is None:
            log.error("reset failed")

    def send(self, can_id: int, data: bytes) -> bool:
        """Queue a standard frame in TXB0 and request transmission."""
        data = bytes(data)
        if len(data) > MAX_DATA_LENGTH:
            return False
        if self._test_mode:
            return True

        status = self.read_byte(CAN_RD_STATUS)
        self.write_byte(TXB0SIDH, (can_id >> 3) & 0xFF)
        self.write_byte(TXB0SIDL, (can_id & 0x07) << 5)
        self.write_byte(TXB0EID8, 0)
        self.write_byte(TXB0EID0, 0)
        self.write_byte(TXB0DLC, len(data))
        for offset, byte in enumerate(data):
            self.write_byte(TXB0D0 + offset, byte)

        if status & 0x04:
            time.sleep(0.01)
            self.write_byte(TXB0CTRL, 0)
            while self.read_byte(CAN_RD_STATUS) & 0x04:
                time.sleep(0.001)

        return self._transfer(bytes([CAN_RTS_TXB0])) is not None

    def init(self) -> bool:
        """Configure 500 kbps, accept every frame and enter normal mode."""
        if self._test_mode:
            self.write_byte(CANCTRL, 0x00)
            return True

        self.reset()
        time.sleep(0.1)
        for addr, value in [
            (CNF1, CAN_500KBPS),
            (CNF2, 0x80 | 0x10 | 0x00),
            (CNF3, 0x02),
            (RXB0CTRL, 0x60),
            (RXB0SIDH, 0x00),
            (RXB0SIDL, 0x00),
            (RXF0SIDH, 0x00),
            (RXF0SIDL, 0x00),
            (RXM0SIDH, 0x00),
            (RXM0SIDL, 0x00),
            (CANINTF, 0x00),
            (CANINTE, 0x01),
            (CANCTRL, 0x00),
        ]:
            self.write_byte(addr, value)

        mode = self.read_byte(CANSTAT)
        if mode & 0xE0:
            log.error("failed to enter normal mode, CANSTAT = 0x%x", mode)
            return False
        return True

    def receive(self) -> bytes | None:
        """Data of a received frame, or None when none is waiting."""
        if self._test_mode:
            if not self._test_should_receive:
                return None
            return self._test_receive_data

        status = self.read_byte(CANINTF)
        if not status & 0x01:
            return None
        length = min(self.read_byte(RXB0DLC) & 0x0F, MAX_DATA_LENGTH)
        data = bytes(self.read_byte(RXB0D0 + offset) for offset in range(length))
        self.write_byte(CANINTF, 0x00)
        if self.debug:
            log.debug("status 0x%x length %d", status, length)
        return data

    def can_id(self) -> int:
        """Standard identifier of the frame in RXB0."""
        if self._test_mode:
            return self._test_can_id
        return (self.read_byte(RXB0SIDH) << 3) | (self.read_byte(RXB0SIDL) >> 5)

    def set_test_register(self, addr: int, value: int) -> int:
        if self._test_mode:
            self._test_registers[addr] = value & 0xFF
        return value

    def get_test_register(self, addr: int) -> int:
        if self._test_mode:
            return self._test_registers.get(addr, 0)
        return 0

    def set_test_receive_data(self, data: bytes, can_id: int) -> None:
        """Make the next receive return a frame, at most eight bytes of it."""
        if not self._test_mode:
            return
        payload = bytes(data)[:MAX_DATA_LENGTH]
        self._test_should_receive = True
        self._test_can_id = can_id
        self._test_receive_data = payload
        self._test_registers[RXB0SIDH] = (can_id >> 3) & 0xFF
        self._test_registers[RXB0SIDL] = ((can_id & 0x07) << 5) & 0xFF
        self._test_registers[RXB0DLC] = len(payload)
        for offset, byte in enumerate(payload):
            self._test_registers[RXB0D0 + offset] = byte

    def set_test_should_receive(self, should_receive: bool) -> None:
        if self._test_mode:
            self._test_should_receive = should_receive
            self._test_registers[CANINTF] = 0x01 if should_receive else 0x00

    def initialize(self) -> bool:
        if not self._test_mode and not self.init():
            log.error("CAN initialisation failed")
            return False
        return True

    def close(self) -> None:
        if self._fd is not None:
            os.close(self._fd)
            self._fd = None