"""
Calibration result

CalibrationModel is the immutable bundle produced by one calibration run.
A new run builds a new model; holders of an older model keep seeing a
consistent snapshot.
"""

from dataclasses import dataclass, field
import json
import numpy as np

from ..data.sensor_data import as_sample
from ..data.apply_calibration import (
    apply_gyro_calibration,
    apply_accel_calibration,
    apply_mag_calibration,
)


def _frozen_matrix(values) -> np.ndarray:
    matrix = np.array(values, dtype=np.float64)
    if matrix.shape != (3, 3):
        raise ValueError(f"expected a 3x3 matrix, got shape {matrix.shape}")
    matrix.flags.writeable = False
    return matrix


@dataclass(frozen=True)
class CalibrationModel:
    """
    Gyro, accelerometer and magnetometer correction parameters

    Attributes:
        gyro_offset: subtracted from raw gyro readings (rad/s)
        acc_offset: added to raw accel readings before scaling (m/s^2)
        acc_scale: per-axis accel scale factors
        soft_iron: 3x3 soft iron transform
        hard_iron_bias: subtracted from raw mag readings before soft iron
    """
    gyro_offset: np.ndarray = field(default_factory=lambda: np.zeros(3))
    acc_offset: np.ndarray = field(default_factory=lambda: np.zeros(3))
    acc_scale: np.ndarray = field(default_factory=lambda: np.ones(3))
    soft_iron: np.ndarray = field(default_factory=lambda: np.eye(3))
    hard_iron_bias: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self):
        """Copy every field into read-only float64 storage"""
        object.__setattr__(self, "gyro_offset", as_sample(self.gyro_offset))
        object.__setattr__(self, "acc_offset", as_sample(self.acc_offset))
        object.__setattr__(self, "acc_scale", as_sample(self.acc_scale))
        object.__setattr__(self, "soft_iron", _frozen_matrix(self.soft_iron))
        object.__setattr__(self, "hard_iron_bias", as_sample(self.hard_iron_bias))

    def apply_gyro(self, raw) -> np.ndarray:
        return apply_gyro_calibration(raw, self)

    def apply_accel(self, raw) -> np.ndarray:
        return apply_accel_calibration(raw, self)

    def apply_mag(self, raw) -> np.ndarray:
        return apply_mag_calibration(raw, self)

    def to_dict(self) -> dict:
        """Plain-float representation for export"""
        return {
            "gyro_offset": [float(v) for v in self.gyro_offset],
            "acc_offset": [float(v) for v in self.acc_offset],
            "acc_scale": [float(v) for v in self.acc_scale],
            "soft_iron": [[float(v) for v in row] for row in self.soft_iron],
            "hard_iron_bias": [float(v) for v in self.hard_iron_bias],
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'CalibrationModel':
        """
        Rebuild a model from to_dict() output

        Raises:
            ValueError: missing keys, wrong shapes or non-finite values
        """
        try:
            model = cls(
                gyro_offset=data["gyro_offset"],
                acc_offset=data["acc_offset"],
                acc_scale=data["acc_scale"],
                soft_iron=data["soft_iron"],
                hard_iron_bias=data["hard_iron_bias"],
            )
        except KeyError as e:
            raise ValueError(f"missing calibration field {e}") from e

        for name, value in model.to_dict().items():
            if not np.all(np.isfinite(value)):
                raise ValueError(f"non-finite value in {name}")
        return model

    def as_json_string(self) -> str:
        """JSON rendering suitable for copy and paste"""
        return json.dumps(self.to_dict(), indent=2)
