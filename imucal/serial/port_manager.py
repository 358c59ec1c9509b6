"""
Serial port management

Handles port enumeration, opening and reading, and hands parsed records to
a calibration session through a queue.
"""

import logging
import queue
from typing import List, Optional, Tuple

import serial
import serial.tools.list_ports

from .protocol import LineParser
from ..utils.constants import DEFAULT_BAUD_RATE, SERIAL_TIMEOUT

logger = logging.getLogger(__name__)


def enumerate_ports() -> List[Tuple[str, str]]:
    """
    Enumerate available serial ports

    Returns:
        List of (port_name, description) tuples sorted by name, without
        the legacy /dev/ttyS* devices
    """
    ports = []
    for port_info in serial.tools.list_ports.comports():
        if port_info.device.startswith("/dev/ttyS"):
            continue
        ports.append((port_info.device, port_info.description))

    ports.sort(key=lambda x: x[0])
    return ports


class PortManager:
    """
    Manages one serial connection to the IMU firmware

    Opens 8-N-1 with DTR asserted (Arduino-style boards only start sending
    once DTR is set).
    """

    def __init__(self):
        self.port: Optional[serial.Serial] = None
        self.port_name: Optional[str] = None
        self.baud_rate: int = DEFAULT_BAUD_RATE
        self.parser = LineParser()

    def is_open(self) -> bool:
        return self.port is not None and self.port.is_open

    def open(self, port_name: str, baud_rate: int = DEFAULT_BAUD_RATE) -> bool:
        """
        Open serial port

        Args:
            port_name: device name (e.g., "/dev/ttyUSB0", "COM3")
            baud_rate: baud rate (default 115200)

        Returns:
            True if opened successfully, False otherwise
        """
        self.close()

        try:
            self.port = serial.Serial(
                port=port_name,
                baudrate=baud_rate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=SERIAL_TIMEOUT,
            )
            self.port.dtr = True
        except (serial.SerialException, OSError) as e:
            logger.warning("failed to open %s: %s", port_name, e)
            self.port = None
            self.port_name = None
            return False

        self.port_name = port_name
        self.baud_rate = baud_rate
        self.parser.reset()
        logger.info("opened serial port %s at %d baud", port_name, baud_rate)
        return True

    def close(self):
        """Close serial port"""
        if self.port is not None:
            try:
                self.port.close()
            except (serial.SerialException, OSError) as e:
                logger.warning("error closing %s: %s", self.port_name, e)
            logger.info("closed serial port %s", self.port_name)
            self.port = None
            self.port_name = None

    def read_available(self) -> bytes:
        """
        Read all available data from port

        Returns:
            Bytes read (empty if nothing is waiting or the port is closed)
        """
        if not self.is_open():
            return b''

        try:
            waiting = self.port.in_waiting
            if waiting > 0:
                return self.port.read(waiting)
            return b''
        except (serial.SerialException, OSError) as e:
            logger.warning("read from %s failed, closing: %s", self.port_name, e)
            self.close()
            return b''

    def pump(self, records: queue.Queue) -> int:
        """
        Read what is available and put every parsed record on the queue

        Returns:
            int: number of records queued
        """
        count = 0
        for record in self.parser.feed(self.read_available()):
            records.put(record)
            count += 1
        return count

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
