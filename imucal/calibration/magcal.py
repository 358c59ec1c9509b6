"""
Magnetometer calibration by ellipsoid fitting

Uncalibrated magnetometer readings trace an ellipsoid that is off-centre
(hard iron) and skewed (soft iron). The fit follows Li & Griffiths (2004)
and Li (2008): a constrained least-squares quadric fit solved as a
generalized eigenvalue problem on the 6 quadratic coefficients, followed by
back-substitution for the 4 linear and constant coefficients.

General quadric:
    a x^2 + b y^2 + c z^2 + 2f yz + 2g xz + 2h xy + 2p x + 2q y + 2r z + d = 0

In matrix form:
    X^T M X + 2 n^T X + d = 0

The calibration maps every point of that ellipsoid onto a sphere of radius F:
    hard_iron_bias = -inv(M) @ n
    soft_iron = sqrt(M) * F / sqrt(n^T inv(M) n - d)

MagnetometerCalibrator fits the cloud after centring it on its mean and
scaling it to unit RMS radius, then maps the result back, so the outcome
does not depend on the field units.
"""

import logging
from dataclasses import dataclass

import numpy as np

from .errors import InsufficientDataError, DegenerateGeometryError
from .matrix import (
    EigenSolver,
    scipy_eigen_solver,
    checked_inverse,
    matrix_sqrt,
    quadric_matrix,
)
from ..data.sensor_data import as_sample_array
from ..utils.constants import (
    MIN_MAG_SAMPLES,
    SQRTM_ITERATIONS,
    DEGENERATE_GEOMETRY_RATIO,
    MAX_FIT_ERROR,
)

logger = logging.getLogger(__name__)

# Li's ellipsoid constraint 4ac - b^2 > 0 generalised to 3D with k = 4
CONSTRAINT_MATRIX = np.array([
    [-1.0,  1.0,  1.0,  0.0,  0.0,  0.0],
    [ 1.0, -1.0,  1.0,  0.0,  0.0,  0.0],
    [ 1.0,  1.0, -1.0,  0.0,  0.0,  0.0],
    [ 0.0,  0.0,  0.0, -4.0,  0.0,  0.0],
    [ 0.0,  0.0,  0.0,  0.0, -4.0,  0.0],
    [ 0.0,  0.0,  0.0,  0.0,  0.0, -4.0],
])


@dataclass(frozen=True)
class EllipsoidFit:
    """
    Fitted quadric X^T M X + 2 n^T X + d = 0

    Attributes:
        M: 3x3 symmetric quadratic form
        n: linear coefficients (p, q, r)
        d: constant term
        eigenvalue: real part of the eigenvalue whose eigenvector was chosen
    """
    M: np.ndarray
    n: np.ndarray
    d: float
    eigenvalue: float

    @property
    def coefficients(self) -> np.ndarray:
        """[a, b, c, f, g, h, p, q, r, d]"""
        M = self.M
        return np.array([
            M[0, 0], M[1, 1], M[2, 2], M[1, 2], M[0, 2], M[0, 1],
            self.n[0], self.n[1], self.n[2], self.d,
        ])

    def denormalized(self, center: np.ndarray, scale: float) -> 'EllipsoidFit':
        """
        Express a fit of (X - center) / scale in the original coordinates

        M is unchanged; n and d absorb the shift and scale.
        """
        M_c = self.M @ center
        return EllipsoidFit(
            M=self.M,
            n=scale * self.n - M_c,
            d=float(center @ M_c - 2.0 * scale * (self.n @ center) + scale * scale * self.d),
            eigenvalue=self.eigenvalue,
        )


@dataclass(frozen=True)
class MagCalibrationResult:
    """Soft iron transform, hard iron bias and how well they fit the data"""
    soft_iron: np.ndarray
    hard_iron_bias: np.ndarray
    field_strength: float
    fit_error: float  # std/mean of calibrated magnitudes (%)
    ellipsoid: EllipsoidFit


def build_design_matrix(points: np.ndarray) -> np.ndarray:
    """
    Design matrix D (10 x N)

    Each column is [x^2, y^2, z^2, 2yz, 2xz, 2xy, 2x, 2y, 2z, 1].
    """
    x = points[:, 0]
    y = points[:, 1]
    z = points[:, 2]
    return np.vstack([
        x * x,
        y * y,
        z * z,
        2.0 * y * z,
        2.0 * x * z,
        2.0 * x * y,
        2.0 * x,
        2.0 * y,
        2.0 * z,
        np.ones_like(x),
    ])


def _check_samples(points: np.ndarray, min_samples: int):
    if not np.all(np.isfinite(points)):
        raise ValueError("magnetometer samples contain non-finite values")

    distinct = len(np.unique(points, axis=0)) if len(points) else 0
    if distinct < min_samples:
        raise InsufficientDataError(
            f"ellipsoid fit needs at least {min_samples} distinct magnetometer "
            f"samples, got {distinct}",
            sensor="mag",
        )

    # A flat or thin cloud cannot pin down a 3D quadric
    spread = np.linalg.svd(points - points.mean(axis=0), compute_uv=False)
    if spread[-1] <= spread[0] * DEGENERATE_GEOMETRY_RATIO:
        shape = "collinear" if spread[1] <= spread[0] * DEGENERATE_GEOMETRY_RATIO else "coplanar"
        raise DegenerateGeometryError(f"magnetometer samples are {shape}")


def normalize_samples(points: np.ndarray):
    """
    Centre a point cloud on its mean and scale it to unit RMS radius

    The scatter matrix mixes fourth powers of the coordinates with the
    sample count, so its conditioning depends on the field units unless
    the cloud is normalised first.

    Returns:
        tuple: (normalised points, center, scale) with
        points == normalised * scale + center
    """
    center = points.mean(axis=0)
    offsets = points - center
    scale = float(np.sqrt(np.mean(np.sum(offsets * offsets, axis=1))))
    return offsets / scale, center, scale


def fit_ellipsoid(samples, eigen_solver: EigenSolver = scipy_eigen_solver,
                  min_samples: int = MIN_MAG_SAMPLES) -> EllipsoidFit:
    """
    Fit a general ellipsoid to a 3D point cloud

    Args:
        samples: (N, 3) array of raw magnetometer readings
        eigen_solver: dense eigen-decomposition used for the 6x6 problem
        min_samples: minimum number of distinct samples

    Returns:
        EllipsoidFit: quadric coefficients, sign-normalised so a >= 0

    Raises:
        InsufficientDataError: fewer than min_samples distinct samples
        DegenerateGeometryError: coplanar/collinear cloud, or no usable eigenvector
        SingularMatrixError: S22 or C cannot be inverted
    """
    points = as_sample_array(samples)
    _check_samples(points, min_samples)

    D = build_design_matrix(points)
    S = D @ D.T

    S11 = S[:6, :6]  # quadratic terms
    S12 = S[:6, 6:]
    S21 = S[6:, :6]
    S22 = S[6:, 6:]  # linear + constant terms

    S22_inv = checked_inverse(S22, "S22")
    C_inv = checked_inverse(CONSTRAINT_MATRIX, "C")

    E = C_inv @ (S11 - S12 @ S22_inv @ S21)

    eigenvalues, eigenvectors = eigen_solver(E)
    eigenvalues = np.asarray(eigenvalues)
    if not np.all(np.isfinite(eigenvalues)):
        raise DegenerateGeometryError("eigen-decomposition produced non-finite values")

    # The physically valid branch has the largest (real) eigenvalue
    index = int(np.argmax(eigenvalues.real))
    v1 = np.real(np.asarray(eigenvectors)[:, index])
    norm = np.linalg.norm(v1)
    if not np.isfinite(norm) or norm == 0.0:
        raise DegenerateGeometryError("selected eigenvector is zero")
    v1 = v1 / norm
    if v1[0] < 0:
        v1 = -v1

    v2 = -S22_inv @ S21 @ v1

    logger.debug("ellipsoid fit: eigenvalue %.6g, v1=%s, v2=%s",
                 eigenvalues[index].real, v1, v2)

    return EllipsoidFit(
        M=quadric_matrix(v1),
        n=v2[:3].copy(),
        d=float(v2[3]),
        eigenvalue=float(eigenvalues[index].real),
    )


def ellipsoid_to_calibration(fit: EllipsoidFit, field_strength: float,
                             iterations: int = SQRTM_ITERATIONS):
    """
    Derive the hard iron bias and soft iron transform from a fitted ellipsoid

    Args:
        fit: EllipsoidFit
        field_strength: radius F of the sphere the data is mapped onto
        iterations: matrix square root iterations

    Returns:
        tuple: (soft_iron 3x3, hard_iron_bias 3-vector)

    Raises:
        SingularMatrixError: M or a square root iterate cannot be inverted
        DegenerateGeometryError: the quadric is not a real ellipsoid
    """
    if not np.isfinite(field_strength) or field_strength <= 0.0:
        raise ValueError(f"field strength must be positive, got {field_strength}")

    M_inv = checked_inverse(fit.M, "M")
    if np.any(np.linalg.eigvalsh(fit.M) <= 0.0):
        raise DegenerateGeometryError("fitted quadric is not an ellipsoid")

    hard_iron_bias = -M_inv @ fit.n

    x1 = float(fit.n @ M_inv @ fit.n - fit.d)
    if not x1 > 0.0:
        raise DegenerateGeometryError(f"fitted ellipsoid has no real points (x1={x1:.6g})")

    A = matrix_sqrt(fit.M, iterations)
    soft_iron = A * (field_strength / np.sqrt(x1))

    logger.debug("ellipsoid calibration: x1=%.6g, bias=%s", x1, hard_iron_bias)
    return soft_iron, hard_iron_bias


class MagnetometerCalibrator:
    """
    Soft iron / hard iron calibration for a magnetometer

    Example:
        >>> calibrator = MagnetometerCalibrator()
        >>> result = calibrator.calibrate(samples, field_strength=1.0)
        >>> corrected = result.soft_iron @ (raw - result.hard_iron_bias)
    """

    def __init__(self, eigen_solver: EigenSolver = scipy_eigen_solver,
                 min_samples: int = MIN_MAG_SAMPLES,
                 sqrtm_iterations: int = SQRTM_ITERATIONS,
                 max_fit_error: float = MAX_FIT_ERROR):
        self.eigen_solver = eigen_solver
        self.min_samples = min_samples
        self.sqrtm_iterations = sqrtm_iterations
        self.max_fit_error = max_fit_error

    def fit(self, samples) -> EllipsoidFit:
        return fit_ellipsoid(samples, self.eigen_solver, self.min_samples)

    def calibrate(self, samples, field_strength: float) -> MagCalibrationResult:
        """
        Fit the samples and map them onto a sphere of radius field_strength

        Args:
            samples: (N, 3) raw magnetometer readings
            field_strength: reference field magnitude F (1.0 when only
                direction matters)

        Returns:
            MagCalibrationResult

        Raises:
            InsufficientDataError, SingularMatrixError: see fit_ellipsoid
            DegenerateGeometryError: degenerate cloud, or the calibrated
                magnitudes spread by more than max_fit_error percent
        """
        points = as_sample_array(samples)
        _check_samples(points, self.min_samples)

        normalized, center, scale = normalize_samples(points)
        fit = self.fit(normalized)
        unit_soft_iron, unit_bias = ellipsoid_to_calibration(
            fit, field_strength, self.sqrtm_iterations
        )
        # soft' @ ((p - c) / s - b') == (soft' / s) @ (p - (c + s b'))
        soft_iron = unit_soft_iron / scale
        hard_iron_bias = center + scale * unit_bias

        magnitudes = np.linalg.norm((points - hard_iron_bias) @ soft_iron.T, axis=1)
        fit_error = float(np.std(magnitudes) / np.mean(magnitudes) * 100.0)
        if not fit_error <= self.max_fit_error:
            raise DegenerateGeometryError(
                f"fit error {fit_error:.3f}% exceeds {self.max_fit_error:.3f}%: "
                "samples do not lie on an ellipsoid"
            )

        logger.info("magnetometer calibrated from %d samples, fit error %.3f%%",
                    len(points), fit_error)

        return MagCalibrationResult(
            soft_iron=soft_iron,
            hard_iron_bias=hard_iron_bias,
            field_strength=float(field_strength),
            fit_error=fit_error,
            ellipsoid=fit.denormalized(center, scale),
        )
