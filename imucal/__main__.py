"""
imucal command line

    imucal calibrate samples.json --field 1.0
    imucal quality samples.json
    imucal record /dev/ttyUSB0 --seconds 60 --output samples.json
    imucal ports
"""

import argparse
import logging
import queue
import sys
import time

from .calibration.errors import CalibrationError
from .calibration.session import CalibrationSession
from .serial.port_manager import PortManager, enumerate_ports
from .utils.constants import DEFAULT_BAUD_RATE, BAUD_RATES


def _load_session(path) -> CalibrationSession:
    session = CalibrationSession()
    session.load(path)
    return session


def cmd_calibrate(args) -> int:
    session = _load_session(args.samples)
    try:
        model = session.calibrate(args.field, include_mag=not args.no_mag)
    except CalibrationError as e:
        print(f"Calibration failed: {e}", file=sys.stderr)
        return 1

    print(model.as_json_string())
    if session.mag_result is not None:
        print(f"Magnetometer fit error: {session.mag_result.fit_error:.3f}%", file=sys.stderr)
    return 0


def cmd_quality(args) -> int:
    session = _load_session(args.samples)
    report = session.quality_report()
    print(f"Gaps:     {report.gaps:6.2f}%")
    print(f"Variance: {report.variance:6.2f}%")
    print(f"Wobble:   {report.wobble:6.2f}%")
    print("Coverage acceptable" if report.acceptable else "Coverage not acceptable")
    return 0 if report.acceptable else 2


def cmd_record(args) -> int:
    session = CalibrationSession()
    session.collect_gyro = not args.no_gyro
    session.collect_accel = not args.no_accel
    session.collect_mag = not args.no_mag
    session.filter_standstill = args.still

    records = queue.Queue()
    with PortManager() as port:
        if not port.open(args.port, args.baud):
            print(f"Could not open {args.port}", file=sys.stderr)
            return 1

        deadline = time.monotonic() + args.seconds
        while time.monotonic() < deadline:
            port.pump(records)
            session.drain(records)
            time.sleep(0.01)

    gyro, accel, mag = session.store.counts()
    print(f"Recorded {gyro} gyro, {accel} accel, {mag} mag samples")
    session.save(args.output)
    return 0


def cmd_ports(args) -> int:
    for name, description in enumerate_ports():
        print(f"{name}\t{description}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="imucal",
        description="IMU calibration: gyro/accel offsets, magnetometer soft and hard iron",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("calibrate", help="compute a calibration model from a sample file")
    p.add_argument("samples", help="JSON sample file")
    p.add_argument("--field", type=float, required=True,
                   help="reference magnetic field magnitude (1.0 for direction only)")
    p.add_argument("--no-mag", action="store_true", help="skip the magnetometer fit")
    p.set_defaults(func=cmd_calibrate)

    p = sub.add_parser("quality", help="score magnetometer sphere coverage")
    p.add_argument("samples", help="JSON sample file")
    p.set_defaults(func=cmd_quality)

    p = sub.add_parser("record", help="record samples from a serial port")
    p.add_argument("port", help="serial device, e.g. /dev/ttyUSB0")
    p.add_argument("--baud", type=int, default=DEFAULT_BAUD_RATE, choices=BAUD_RATES)
    p.add_argument("--seconds", type=float, default=30.0)
    p.add_argument("--output", required=True, help="JSON file to write")
    p.add_argument("--still", action="store_true", help="only keep gyro/accel samples at rest")
    p.add_argument("--no-gyro", action="store_true")
    p.add_argument("--no-accel", action="store_true")
    p.add_argument("--no-mag", action="store_true")
    p.set_defaults(func=cmd_record)

    p = sub.add_parser("ports", help="list serial ports")
    p.set_defaults(func=cmd_ports)

    return parser


def main(argv=None) -> int:
    """Main entry point for the imucal command"""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
