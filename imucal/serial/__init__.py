"""
Serial ingestion for IMU firmware streaming "imu ..." / "mag ..." lines
"""

from .protocol import LineParser, parse_line
from .port_manager import PortManager, enumerate_ports

__all__ = ["LineParser", "parse_line", "PortManager", "enumerate_ports"]
