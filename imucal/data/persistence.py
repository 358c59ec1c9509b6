"""
Save and load raw sample sequences

File format (JSON):
    {
        "gyro_points": [[x, y, z], ...],
        "acc_points": [[x, y, z], ...],
        "mag_points": [[x, y, z], ...]
    }

Calibration results are never written to this file.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import List

import numpy as np

from .sensor_data import as_sample_array

logger = logging.getLogger(__name__)

GYRO_KEY = "gyro_points"
ACCEL_KEY = "acc_points"
MAG_KEY = "mag_points"


@dataclass
class SampleSet:
    """Raw gyro, accel and mag sequences as (N, 3) arrays"""
    gyro: np.ndarray = field(default_factory=lambda: np.zeros((0, 3)))
    accel: np.ndarray = field(default_factory=lambda: np.zeros((0, 3)))
    mag: np.ndarray = field(default_factory=lambda: np.zeros((0, 3)))


def _points_to_list(points) -> List[List[float]]:
    return [[float(v) for v in p] for p in as_sample_array(points)]


def samples_to_dict(samples: SampleSet) -> dict:
    return {
        GYRO_KEY: _points_to_list(samples.gyro),
        ACCEL_KEY: _points_to_list(samples.accel),
        MAG_KEY: _points_to_list(samples.mag),
    }


def samples_from_dict(data: dict) -> SampleSet:
    """
    Parse a loaded document; missing sequences load as empty

    Raises:
        ValueError: an entry is not a 3-vector
    """
    if not isinstance(data, dict):
        raise ValueError("sample file must contain a JSON object")
    return SampleSet(
        gyro=as_sample_array(data.get(GYRO_KEY, [])),
        accel=as_sample_array(data.get(ACCEL_KEY, [])),
        mag=as_sample_array(data.get(MAG_KEY, [])),
    )


def save_samples(path, samples: SampleSet):
    """Write samples to a JSON file"""
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(samples_to_dict(samples), fh)
    logger.info("saved %d gyro, %d accel, %d mag samples to %s",
                len(samples.gyro), len(samples.accel), len(samples.mag), path)


def load_samples(path) -> SampleSet:
    """
    Read samples from a JSON file

    Raises:
        OSError: file cannot be read
        ValueError: malformed document
    """
    with open(path, "r", encoding="utf-8") as fh:
        data = json.load(fh)
    samples = samples_from_dict(data)
    logger.info("loaded %d gyro, %d accel, %d mag samples from %s",
                len(samples.gyro), len(samples.accel), len(samples.mag), path)
    return samples
