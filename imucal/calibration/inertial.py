"""
Gyroscope and accelerometer calibration

Gyroscope: the offset is the mean of samples taken at rest.

Accelerometer: six static orientations expose each axis to +g and -g. For
every axis the samples whose component exceeds 0.75 g form the positive
lobe and those below -0.75 g the negative lobe. With lobe means s+ and s-:

    offset = -(s+ + s-) / 2
    scale  = 2 g0 / (s+ - s-)

so that (raw + offset) * scale maps the lobes onto +g0 and -g0.
"""

import logging
from dataclasses import dataclass

import numpy as np

from .errors import InsufficientDataError
from ..data.sensor_data import as_sample_array
from ..utils.constants import G0, G0_THRESHOLD_RATIO

logger = logging.getLogger(__name__)

AXIS_NAMES = ("x", "y", "z")


def _mean(values: np.ndarray) -> np.ndarray:
    # shifted by the first value; identical inputs give that value exactly
    return values[0] + (values - values[0]).mean(axis=0)


@dataclass(frozen=True)
class AxisLobes:
    """Mean reading of one axis while pointing up and down"""
    positive_mean: float
    negative_mean: float
    positive_count: int
    negative_count: int


class InertialCalibrator:
    """
    Offset and scale estimation for gyroscope and accelerometer

    Args:
        gravity: magnitude of gravity the accelerometer should report
        threshold_ratio: fraction of gravity a component must exceed to
            count as pointing along the axis
    """

    def __init__(self, gravity: float = G0, threshold_ratio: float = G0_THRESHOLD_RATIO):
        self.gravity = gravity
        self.threshold = gravity * threshold_ratio

    def gyro_offset(self, samples) -> np.ndarray:
        """
        Mean of all gyro samples

        Raises:
            InsufficientDataError: no samples
        """
        points = as_sample_array(samples)
        if len(points) == 0:
            raise InsufficientDataError("gyro offset needs at least one sample", sensor="gyro")
        return _mean(points)

    def axis_lobes(self, samples, axis: int) -> AxisLobes:
        """
        Split one axis's components into the +g and -g lobes

        Args:
            samples: (N, 3) accelerometer readings
            axis: 0, 1 or 2

        Raises:
            InsufficientDataError: either lobe has no members
        """
        component = as_sample_array(samples)[:, axis]
        positive = component[component > self.threshold]
        negative = component[component < -self.threshold]

        for lobe, members in (("positive", positive), ("negative", negative)):
            if len(members) == 0:
                raise InsufficientDataError(
                    f"accelerometer {AXIS_NAMES[axis]} axis has no {lobe} lobe samples "
                    f"(|a| > {self.threshold:.3f})",
                    sensor="accel", axis=AXIS_NAMES[axis], lobe=lobe,
                )

        return AxisLobes(
            positive_mean=float(_mean(positive)),
            negative_mean=float(_mean(negative)),
            positive_count=len(positive),
            negative_count=len(negative),
        )

    def accel_offset_scale(self, samples):
        """
        Per-axis accelerometer offset and scale

        Returns:
            tuple: (offset 3-vector, scale 3-vector)
        """
        offset = np.zeros(3)
        scale = np.ones(3)
        for axis in range(3):
            lobes = self.axis_lobes(samples, axis)
            offset[axis] = -(lobes.positive_mean + lobes.negative_mean) / 2.0
            scale[axis] = 2.0 * self.gravity / (lobes.positive_mean - lobes.negative_mean)
            logger.debug("accel %s: s+=%.6f (%d) s-=%.6f (%d)", AXIS_NAMES[axis],
                         lobes.positive_mean, lobes.positive_count,
                         lobes.negative_mean, lobes.negative_count)
        return offset, scale
