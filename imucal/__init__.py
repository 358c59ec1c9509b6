"""
imucal - IMU Calibration

Turns raw gyroscope, accelerometer and magnetometer samples into a
correction model (gyro offset, accelerometer offset and scale, magnetometer
soft iron transform and hard iron bias), and scores how well the collected
magnetometer samples cover the sphere.
"""

from .calibration.data_structures import CalibrationModel
from .calibration.errors import (
    CalibrationError,
    InsufficientDataError,
    SingularMatrixError,
    DegenerateGeometryError,
)
from .calibration.inertial import InertialCalibrator
from .calibration.magcal import MagnetometerCalibrator, fit_ellipsoid
from .calibration.quality import QualityScorer, QualityReport, sphere_region
from .calibration.session import CalibrationSession
from .data.sample_store import SampleStore, StillnessFilter
from .data.sensor_data import ImuData, MagData

__version__ = "1.0.0"
__all__ = [
    "CalibrationModel",
    "CalibrationError",
    "InsufficientDataError",
    "SingularMatrixError",
    "DegenerateGeometryError",
    "InertialCalibrator",
    "MagnetometerCalibrator",
    "fit_ellipsoid",
    "QualityScorer",
    "QualityReport",
    "sphere_region",
    "CalibrationSession",
    "SampleStore",
    "StillnessFilter",
    "ImuData",
    "MagData",
]
