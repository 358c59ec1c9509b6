"""
Apply a CalibrationModel to raw readings

Pure functions; each accepts a single 3-vector or an (N, 3) array and
returns an array of the same shape.
"""

import numpy as np


def apply_gyro_calibration(raw, model) -> np.ndarray:
    """
    Remove the gyroscope offset

    calibrated = raw - gyro_offset
    """
    return np.asarray(raw, dtype=np.float64) - model.gyro_offset


def apply_accel_calibration(raw, model) -> np.ndarray:
    """
    Correct accelerometer bias and scale

    calibrated = (raw + acc_offset) * acc_scale   (component-wise)
    """
    return (np.asarray(raw, dtype=np.float64) + model.acc_offset) * model.acc_scale


def apply_mag_calibration(raw, model) -> np.ndarray:
    """
    Apply hard iron and soft iron correction to magnetometer readings

    calibrated = soft_iron @ (raw - hard_iron_bias)

    Args:
        raw: 3-vector or (N, 3) array of raw readings
        model: CalibrationModel

    Returns:
        np.ndarray: calibrated readings, same shape as raw
    """
    centered = np.asarray(raw, dtype=np.float64) - model.hard_iron_bias
    # Row vectors: (soft_iron @ p.T).T == p @ soft_iron.T
    return centered @ model.soft_iron.T
