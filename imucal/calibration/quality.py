"""
Quality metrics for magnetometer data

Three indicators of whether the collected samples can support a trustworthy
fit, after MotionCal's quality.c:
- surface gap error: coverage of 100 equal-area regions of the sphere
- magnitude variance error: consistency of the field magnitude
- wobble error: offset of the regional averages from an ideal sphere

Discussion of these metrics:
https://forum.pjrc.com/threads/59277-Motion-Sensor-Calibration-Tool-Parameter-Understanding
"""

import math
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

import numpy as np

from ..utils.constants import (
    REGION_COUNT,
    POLAR_CAP_LATITUDE,
    TEMPERATE_LATITUDE,
    TEMPERATE_REGIONS,
    TROPIC_REGIONS,
    TEMPERATE_IDEAL_LATITUDE,
    TROPIC_IDEAL_LATITUDE,
    GAP_PENALTIES,
    EMPTY_QUALITY_ERROR,
    QUALITY_GAPS_THRESHOLD,
    QUALITY_VARIANCE_THRESHOLD,
    QUALITY_WOBBLE_THRESHOLD,
)

T = TypeVar("T")

# First region index of each band
NORTH_TEMPERATE_START = 1
NORTH_TROPIC_START = NORTH_TEMPERATE_START + TEMPERATE_REGIONS  # 16
SOUTH_TROPIC_START = NORTH_TROPIC_START + TROPIC_REGIONS  # 50
SOUTH_TEMPERATE_START = SOUTH_TROPIC_START + TROPIC_REGIONS  # 84
ANTARCTIC_REGION = REGION_COUNT - 1  # 99


class CachedValue(Generic[T]):
    """
    Memoized result of a computation that goes stale on writes

    Owners call invalidate() whenever the inputs change; get() recomputes
    only when stale.
    """

    def __init__(self, compute: Callable[[], T]):
        self._compute = compute
        self._value = None
        self._stale = True

    @property
    def stale(self) -> bool:
        return self._stale

    def invalidate(self):
        self._stale = True

    def get(self) -> T:
        if self._stale:
            self._value = self._compute()
            self._stale = False
        return self._value


def _band_bin(longitude: float, bins: int) -> int:
    if not math.isfinite(longitude):
        return 0
    region = int(math.floor(longitude * (bins / (math.pi * 2.0))))
    # exact 2*pi longitudes would land one past the last bin
    return min(max(region, 0), bins - 1)


def sphere_region(x: float, y: float, z: float) -> int:
    """
    Return region index (0-99) on a sphere of equal surface area

    - Arctic cap (1 region): lat > 78.52 deg
    - North temperate (15 regions): 42.84 < lat <= 78.52 deg
    - North tropic (34 regions): 0 <= lat <= 42.84 deg
    - South tropic (34 regions): -42.84 <= lat < 0 deg
    - South temperate (15 regions): -78.52 <= lat < -42.84 deg
    - Antarctic cap (1 region): lat < -78.52 deg

    Args:
        x, y, z: Cartesian coordinates (need not be unit length)

    Returns:
        int: region index 0-99
    """
    longitude = math.atan2(y, x) + math.pi  # 0 to 2*pi
    latitude = (math.pi / 2.0) - math.atan2(math.sqrt(x * x + y * y), z)

    if latitude > POLAR_CAP_LATITUDE:
        return 0
    if latitude < -POLAR_CAP_LATITUDE:
        return ANTARCTIC_REGION
    if latitude > TEMPERATE_LATITUDE:
        return NORTH_TEMPERATE_START + _band_bin(longitude, TEMPERATE_REGIONS)
    if latitude < -TEMPERATE_LATITUDE:
        return SOUTH_TEMPERATE_START + _band_bin(longitude, TEMPERATE_REGIONS)
    if latitude >= 0.0:
        return NORTH_TROPIC_START + _band_bin(longitude, TROPIC_REGIONS)
    return SOUTH_TROPIC_START + _band_bin(longitude, TROPIC_REGIONS)


def _band_ideal(bins: int, latitude: float) -> np.ndarray:
    longitude = (np.arange(bins) + 0.5) * (np.pi * 2.0 / bins)
    # region longitudes are measured from atan2 + pi, hence the sign flip
    return np.column_stack([
        -np.cos(longitude) * np.cos(latitude),
        -np.sin(longitude) * np.cos(latitude),
        np.full(bins, np.sin(latitude)),
    ])


def ideal_sphere() -> np.ndarray:
    """Unit vector at the centre of each of the 100 regions, shape (100, 3)"""
    return np.vstack([
        [[0.0, 0.0, 1.0]],
        _band_ideal(TEMPERATE_REGIONS, TEMPERATE_IDEAL_LATITUDE),
        _band_ideal(TROPIC_REGIONS, TROPIC_IDEAL_LATITUDE),
        _band_ideal(TROPIC_REGIONS, -TROPIC_IDEAL_LATITUDE),
        _band_ideal(TEMPERATE_REGIONS, -TEMPERATE_IDEAL_LATITUDE),
        [[0.0, 0.0, -1.0]],
    ])


SPHERE_IDEAL = ideal_sphere()
SPHERE_IDEAL.flags.writeable = False


@dataclass(frozen=True)
class QualityReport:
    """Snapshot of the three quality errors (all in %, lower is better)"""
    gaps: float
    variance: float
    wobble: float

    @property
    def acceptable(self) -> bool:
        """True when all errors are under MotionCal's send thresholds"""
        return (self.gaps < QUALITY_GAPS_THRESHOLD
                and self.variance < QUALITY_VARIANCE_THRESHOLD
                and self.wobble < QUALITY_WOBBLE_THRESHOLD)


class QualityScorer:
    """
    Incremental sphere coverage scoring for magnetometer samples

    Example:
        >>> scorer = QualityScorer()
        >>> for p in samples:
        ...     scorer.update(p)
        >>> scorer.surface_gap_error()
    """

    def __init__(self):
        self.sphere_dist = np.zeros(REGION_COUNT, dtype=np.int64)
        self.sphere_data = np.zeros((REGION_COUNT, 3), dtype=np.float64)
        self.magnitudes = []

        # Welford accumulators over self.magnitudes
        self._mean = 0.0
        self._m2 = 0.0

        self._gaps = CachedValue(self._calc_surface_gap_error)
        self._variance = CachedValue(self._calc_magnitude_variance_error)
        self._wobble = CachedValue(self._calc_wobble_error)

    @property
    def count(self) -> int:
        return len(self.magnitudes)

    def reset(self):
        """Forget all samples"""
        self.sphere_dist.fill(0)
        self.sphere_data.fill(0.0)
        self.magnitudes.clear()
        self._mean = 0.0
        self._m2 = 0.0
        self._invalidate()

    def update(self, point):
        """
        Add one magnetometer sample and refresh all three errors

        Args:
            point: 3-vector
        """
        x, y, z = (float(v) for v in point)
        magnitude = math.sqrt(x * x + y * y + z * z)

        self.magnitudes.append(magnitude)
        delta = magnitude - self._mean
        self._mean += delta / len(self.magnitudes)
        self._m2 += delta * (magnitude - self._mean)

        region = sphere_region(x, y, z)
        self.sphere_dist[region] += 1
        self.sphere_data[region] += (x, y, z)

        self._invalidate()
        self._gaps.get()
        self._variance.get()
        self._wobble.get()

    def _invalidate(self):
        self._gaps.invalidate()
        self._variance.invalidate()
        self._wobble.invalidate()

    def surface_gap_error(self) -> float:
        """Sum of per-region coverage penalties (0 = full coverage, 100 = empty)"""
        return self._gaps.get()

    def magnitude_variance_error(self) -> float:
        """Standard deviation of magnitudes as a percentage of their mean"""
        return self._variance.get()

    def wobble_error(self) -> float:
        """Offset of the regional averages from an ideal sphere, % of radius"""
        return self._wobble.get()

    def report(self) -> QualityReport:
        return QualityReport(
            gaps=self.surface_gap_error(),
            variance=self.magnitude_variance_error(),
            wobble=self.wobble_error(),
        )

    def _calc_surface_gap_error(self) -> float:
        error = 0.0
        for num in self.sphere_dist:
            if num < len(GAP_PENALTIES):
                error += GAP_PENALTIES[num]
        return error

    def _calc_magnitude_variance_error(self) -> float:
        if not self.magnitudes or self._mean == 0.0:
            return EMPTY_QUALITY_ERROR
        variance = self._m2 / len(self.magnitudes)
        return math.sqrt(max(variance, 0.0)) / self._mean * 100.0

    def _calc_wobble_error(self) -> float:
        populated = self.sphere_dist > 0
        n = int(np.count_nonzero(populated))
        if n == 0 or self._mean == 0.0:
            return EMPTY_QUALITY_ERROR

        radius = self._mean
        averages = self.sphere_data[populated] / self.sphere_dist[populated, None]
        ideal = SPHERE_IDEAL[populated] * radius
        offset = (averages - ideal).sum(axis=0) / n

        return float(np.linalg.norm(offset) / radius * 100.0)
