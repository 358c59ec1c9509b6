"""
Shared synthetic data for the calibration tests
"""

import numpy as np
import pytest

from imucal.utils.constants import G0


def fibonacci_sphere(count: int) -> np.ndarray:
    """Evenly spread unit vectors, shape (count, 3)"""
    i = np.arange(count) + 0.5
    phi = np.arccos(1.0 - 2.0 * i / count)
    theta = np.pi * (1.0 + np.sqrt(5.0)) * i
    return np.column_stack([
        np.cos(theta) * np.sin(phi),
        np.sin(theta) * np.sin(phi),
        np.cos(phi),
    ])


class Ellipsoid:
    """Points x = center + L @ u for unit vectors u, L symmetric positive definite"""

    def __init__(self, center, L, count=200):
        self.center = np.asarray(center, dtype=np.float64)
        self.L = np.asarray(L, dtype=np.float64)
        self.points = self.center + fibonacci_sphere(count) @ self.L.T

    @property
    def M(self) -> np.ndarray:
        return np.linalg.inv(self.L @ self.L.T)

    @property
    def n(self) -> np.ndarray:
        return -self.M @ self.center

    @property
    def d(self) -> float:
        return float(self.center @ self.M @ self.center - 1.0)


@pytest.fixture
def unit_ellipsoid():
    """Mildly skewed, off-centre ellipsoid with semi-axes near 1"""
    return Ellipsoid(
        center=[0.3, -0.2, 0.1],
        L=[[1.0, 0.1, 0.0],
           [0.1, 0.8, 0.05],
           [0.0, 0.05, 1.2]],
    )


@pytest.fixture
def field_ellipsoid():
    """Magnetometer-scale ellipsoid (tens of field units, large hard iron)"""
    return Ellipsoid(
        center=[12.0, -7.5, 20.0],
        L=[[45.0, 4.0, 0.0],
           [4.0, 50.0, 2.5],
           [0.0, 2.5, 55.0]],
        count=300,
    )


def six_orientations(per_orientation=20, scale=(1.0, 1.0, 1.0), bias=(0.0, 0.0, 0.0),
                     jitter=1e-3):
    """
    Accelerometer samples for the six static orientations

    Each orientation is a cluster of samples around +/-G0 on one axis and 0
    elsewhere, with symmetric jitter so cluster means are exact. Raw
    readings follow raw = true / scale - bias.
    """
    scale = np.asarray(scale, dtype=np.float64)
    bias = np.asarray(bias, dtype=np.float64)
    noise = np.linspace(-jitter, jitter, per_orientation)

    samples = []
    for axis in range(3):
        for sign in (1.0, -1.0):
            for k in range(per_orientation):
                true = np.zeros(3)
                true[axis] = sign * G0
                true[(axis + 1) % 3] += noise[k]
                true[(axis + 2) % 3] -= noise[k]
                samples.append(true / scale - bias)
    return np.array(samples)


@pytest.fixture
def accel_lobes():
    return six_orientations()


@pytest.fixture
def make_accel_samples():
    return six_orientations


@pytest.fixture
def make_ellipsoid():
    return Ellipsoid


@pytest.fixture
def sphere_points():
    return fibonacci_sphere
