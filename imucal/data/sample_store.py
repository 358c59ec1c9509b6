"""
Sample accumulation and standstill gating

SampleStore keeps the gyroscope, accelerometer and magnetometer samples in
arrival order. StillnessFilter decides whether a gyro/accel reading was
taken while the sensor was not moving.
"""

import logging
import numpy as np

from .sensor_data import as_sample, as_sample_array
from ..utils.constants import (
    GYRO_STILL_ALPHA,
    GYRO_STILL_THRESHOLD,
    ACCEL_STILL_ALPHA,
    ACCEL_STILL_THRESHOLD,
)

logger = logging.getLogger(__name__)


class StillnessFilter:
    """
    Exponential moving average standstill detector

    The average is updated on every call, before the accept test, so
    rejected samples still pull the baseline along.
    """

    def __init__(self, alpha: float, threshold: float):
        self.alpha = alpha
        self.threshold = threshold
        self.average = np.zeros(3, dtype=np.float64)

    def accept(self, sample) -> bool:
        """
        Feed one sample and report whether it is close to the running average

        Args:
            sample: 3-vector

        Returns:
            True if ||avg - sample|| < threshold after the update
        """
        sample = np.asarray(sample, dtype=np.float64)
        self.average = self.average * self.alpha + sample * (1.0 - self.alpha)
        return bool(np.linalg.norm(self.average - sample) < self.threshold)

    def reset(self):
        """Forget the running average"""
        self.average = np.zeros(3, dtype=np.float64)


class SampleStore:
    """
    Append-only accumulators for the three sensors

    Filtered adds go through a per-sensor StillnessFilter. Clearing a
    sensor's samples does not reset its filter.
    """

    def __init__(self,
                 gyro_filter: StillnessFilter = None,
                 accel_filter: StillnessFilter = None):
        self._gyro = []
        self._accel = []
        self._mag = []
        self.gyro_filter = gyro_filter or StillnessFilter(GYRO_STILL_ALPHA, GYRO_STILL_THRESHOLD)
        self.accel_filter = accel_filter or StillnessFilter(ACCEL_STILL_ALPHA, ACCEL_STILL_THRESHOLD)

    def add_gyro(self, sample):
        self._gyro.append(as_sample(sample))

    def add_accel(self, sample):
        self._accel.append(as_sample(sample))

    def add_mag(self, sample):
        self._mag.append(as_sample(sample))

    def add_gyro_filtered(self, sample) -> bool:
        """Append the gyro sample if the sensor looks still; returns acceptance"""
        sample = as_sample(sample)
        accepted = self.gyro_filter.accept(sample)
        if accepted:
            self._gyro.append(sample)
        else:
            logger.debug("gyro sample rejected by standstill filter: %s", sample)
        return accepted

    def add_accel_filtered(self, sample) -> bool:
        """Append the accel sample if the sensor looks still; returns acceptance"""
        sample = as_sample(sample)
        accepted = self.accel_filter.accept(sample)
        if accepted:
            self._accel.append(sample)
        else:
            logger.debug("accel sample rejected by standstill filter: %s", sample)
        return accepted

    def clear_gyro(self):
        self._gyro.clear()

    def clear_accel(self):
        self._accel.clear()

    def clear_mag(self):
        self._mag.clear()

    def reset_filters(self):
        """Forget both standstill baselines (samples are kept)"""
        self.gyro_filter.reset()
        self.accel_filter.reset()

    @property
    def gyro(self) -> np.ndarray:
        """Gyro samples as an (N, 3) array copy"""
        return as_sample_array(self._gyro)

    @property
    def accel(self) -> np.ndarray:
        """Accel samples as an (N, 3) array copy"""
        return as_sample_array(self._accel)

    @property
    def mag(self) -> np.ndarray:
        """Mag samples as an (N, 3) array copy"""
        return as_sample_array(self._mag)

    def counts(self):
        """(gyro, accel, mag) sample counts"""
        return len(self._gyro), len(self._accel), len(self._mag)
