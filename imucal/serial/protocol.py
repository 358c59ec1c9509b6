"""
Line protocol parser for IMU firmware output

Message types (whitespace separated, newline terminated):
- imu gx gy gz ax ay az - gyroscope (rad/s) then accelerometer (m/s^2)
- mag mx my mz          - magnetometer field

Anything else is ignored.
"""

import logging
from typing import Iterator, Optional, Union

from ..data.sensor_data import ImuData, MagData
from ..utils.constants import MAX_LINE_LENGTH

logger = logging.getLogger(__name__)

Record = Union[ImuData, MagData]


def parse_line(line: str) -> Optional[Record]:
    """
    Parse one line of firmware output

    Args:
        line: decoded text line, with or without the trailing newline

    Returns:
        ImuData, MagData, or None for unknown or malformed lines
    """
    parts = line.split()
    if not parts:
        return None

    kind, fields = parts[0], parts[1:]
    try:
        if kind == "imu" and len(fields) == 6:
            values = [float(f) for f in fields]
            return ImuData(
                linear_acceleration=values[3:6],
                angular_velocity=values[0:3],
            )
        if kind == "mag" and len(fields) == 3:
            return MagData(field=[float(f) for f in fields])
    except ValueError:
        logger.warning("malformed %s line: %r", kind, line)
        return None

    return None


class LineParser:
    """
    Byte stream to record parser

    Buffers partial lines between calls. Lines longer than max_line_length
    are truncated, which makes them fail to parse.
    """

    def __init__(self, max_line_length: int = MAX_LINE_LENGTH):
        self.max_line_length = max_line_length
        self.line_buffer = bytearray()
        self.rejected = 0

    def feed(self, data: bytes) -> Iterator[Record]:
        """
        Parse bytes and yield a record for every complete, valid line

        Args:
            data: bytes read from the port
        """
        for byte in data:
            if byte != ord('\n'):
                if len(self.line_buffer) < self.max_line_length:
                    self.line_buffer.append(byte)
                continue

            record = self._process_line()
            self.line_buffer.clear()
            if record is not None:
                yield record

    def _process_line(self) -> Optional[Record]:
        try:
            line = self.line_buffer.decode('ascii').strip()
        except UnicodeDecodeError:
            self.rejected += 1
            return None

        if not line:
            return None

        record = parse_line(line)
        if record is None:
            self.rejected += 1
        return record

    def reset(self):
        self.line_buffer.clear()
        self.rejected = 0
