"""
Sensor data structures

- Sample3: immutable 3-component float64 vector (numpy array, read-only)
- ImuData: one gyroscope + accelerometer record from an acquisition source
- MagData: one magnetometer record from an acquisition source
"""

from dataclasses import dataclass
import numpy as np


def as_sample(values) -> np.ndarray:
    """
    Convert a 3-sequence into an immutable Sample3

    Args:
        values: any sequence or array holding exactly 3 numbers

    Returns:
        np.ndarray: read-only float64 array of shape (3,)

    Raises:
        ValueError: if values does not hold exactly 3 components
    """
    sample = np.array(values, dtype=np.float64)
    if sample.shape != (3,):
        raise ValueError(f"expected a 3-vector, got shape {sample.shape}")
    sample.flags.writeable = False
    return sample


def as_sample_array(samples) -> np.ndarray:
    """Stack a sequence of 3-vectors into an (N, 3) float64 array"""
    array = np.asarray(samples, dtype=np.float64)
    if array.size == 0:
        return np.zeros((0, 3), dtype=np.float64)
    if array.ndim != 2 or array.shape[1] != 3:
        raise ValueError(f"expected an (N, 3) array, got shape {array.shape}")
    return array


@dataclass(frozen=True)
class ImuData:
    """
    Gyroscope and accelerometer reading delivered together

    Units:
        - linear_acceleration: m/s^2
        - angular_velocity: rad/s
    """
    linear_acceleration: np.ndarray
    angular_velocity: np.ndarray

    def __post_init__(self):
        """Freeze both vectors as Sample3"""
        object.__setattr__(self, "linear_acceleration", as_sample(self.linear_acceleration))
        object.__setattr__(self, "angular_velocity", as_sample(self.angular_velocity))


@dataclass(frozen=True)
class MagData:
    """Magnetometer reading (arbitrary field units)"""
    field: np.ndarray

    def __post_init__(self):
        object.__setattr__(self, "field", as_sample(self.field))
