"""
Matrix routines used by the ellipsoid fit

- checked_inverse: inverse that refuses (near-)singular input
- matrix_sqrt: Babylonian (Denman-Beavers style) matrix square root
- EigenSolver: seam for the dense eigen-decomposition
"""

import logging
from typing import Callable, Tuple

import numpy as np
import scipy.linalg

from .errors import SingularMatrixError
from ..utils.constants import SINGULAR_CONDITION_LIMIT, SQRTM_ITERATIONS

logger = logging.getLogger(__name__)

# Given a real square matrix, return (eigenvalues, eigenvectors) where
# eigenvectors[:, i] belongs to eigenvalues[i]. Either may be complex and
# the column order is not significant.
EigenSolver = Callable[[np.ndarray], Tuple[np.ndarray, np.ndarray]]


def scipy_eigen_solver(matrix: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Default EigenSolver backed by LAPACK through scipy"""
    return scipy.linalg.eig(matrix)


def checked_inverse(matrix: np.ndarray, name: str,
                    condition_limit: float = SINGULAR_CONDITION_LIMIT) -> np.ndarray:
    """
    Invert a square matrix, raising instead of returning garbage

    Args:
        matrix: square array
        name: label carried by the error (e.g. "S22")
        condition_limit: condition numbers above this count as singular

    Returns:
        np.ndarray: inverse of matrix

    Raises:
        SingularMatrixError: matrix is singular or numerically close to it
    """
    matrix = np.asarray(matrix, dtype=np.float64)
    if not np.all(np.isfinite(matrix)):
        raise SingularMatrixError(f"{name} contains non-finite values", name=name)

    condition = np.linalg.cond(matrix)
    if not np.isfinite(condition) or condition > condition_limit:
        raise SingularMatrixError(
            f"{name} is singular (condition number {condition:.3g})", name=name
        )

    try:
        return scipy.linalg.inv(matrix)
    except (np.linalg.LinAlgError, ValueError) as e:
        raise SingularMatrixError(f"{name} could not be inverted: {e}", name=name) from e


def matrix_sqrt(matrix: np.ndarray, iterations: int = SQRTM_ITERATIONS) -> np.ndarray:
    """
    Principal square root of a matrix by Babylonian iteration

        X0 = I
        X(k+1) = (X(k) + M @ inv(X(k))) / 2

    Every iterate is a rational function of M, so it commutes with M and
    the iteration is Newton's method for X @ X = M. It converges for
    positive definite M; ten steps suffice for well conditioned input.

    Args:
        matrix: square positive definite array
        iterations: fixed number of iterations

    Returns:
        np.ndarray: X with X @ X ~= matrix

    Raises:
        SingularMatrixError: an iterate is not invertible
    """
    matrix = np.asarray(matrix, dtype=np.float64)
    x = np.eye(matrix.shape[0])
    for _ in range(iterations):
        x = 0.5 * (x + matrix @ checked_inverse(x, "sqrtm"))
    return x


def quadric_matrix(v1: np.ndarray) -> np.ndarray:
    """
    Symmetric quadratic form matrix from [a, b, c, f, g, h]

    The coefficients belong to a x^2 + b y^2 + c z^2 + 2f yz + 2g xz + 2h xy.

        [a  h  g]
        [h  b  f]
        [g  f  c]
    """
    a, b, c, f, g, h = v1
    return np.array([
        [a, h, g],
        [h, b, f],
        [g, f, c],
    ], dtype=np.float64)
