"""
Calibration session

Ties the sample store, the quality scorer and both calibrators together.
Acquisition sources run on their own threads and hand records over through
a queue; the session itself is single-threaded and drains that queue.
"""

import logging
import queue
from typing import Optional

import numpy as np

from .data_structures import CalibrationModel
from .inertial import InertialCalibrator
from .magcal import MagnetometerCalibrator, MagCalibrationResult
from .quality import QualityScorer, QualityReport
from ..data.sample_store import SampleStore
from ..data.sensor_data import ImuData, MagData
from ..data.apply_calibration import (
    apply_gyro_calibration,
    apply_accel_calibration,
    apply_mag_calibration,
)
from ..data.persistence import SampleSet, save_samples, load_samples
from ..tools import log_exceptions

logger = logging.getLogger(__name__)


class CalibrationSession:
    """
    One calibration run's worth of state

    Example:
        >>> session = CalibrationSession()
        >>> session.collect_accel = True
        >>> session.collect_mag = True
        >>> session.drain(records)          # queue fed by a PortManager
        >>> model = session.calibrate(field_strength=1.0)
    """

    def __init__(self,
                 store: SampleStore = None,
                 inertial: InertialCalibrator = None,
                 magnetometer: MagnetometerCalibrator = None):
        self.store = store or SampleStore()
        self.quality = QualityScorer()
        self.inertial = inertial or InertialCalibrator()
        self.magnetometer = magnetometer or MagnetometerCalibrator()

        self.collect_gyro = True
        self.collect_accel = False
        self.collect_mag = False
        self.filter_standstill = False

        self.model: Optional[CalibrationModel] = None
        self.mag_result: Optional[MagCalibrationResult] = None

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def add_imu(self, record: ImuData):
        """Route one gyro/accel record according to the collection switches"""
        if self.collect_accel:
            if self.filter_standstill:
                self.store.add_accel_filtered(record.linear_acceleration)
            else:
                self.store.add_accel(record.linear_acceleration)

        if self.collect_gyro:
            if self.filter_standstill:
                self.store.add_gyro_filtered(record.angular_velocity)
            else:
                self.store.add_gyro(record.angular_velocity)

    def add_mag(self, record: MagData):
        """Store one magnetometer record and score it"""
        if not self.collect_mag:
            return
        self.store.add_mag(record.field)
        self.quality.update(record.field)

    def add_record(self, record):
        if isinstance(record, ImuData):
            self.add_imu(record)
        elif isinstance(record, MagData):
            self.add_mag(record)
        else:
            raise TypeError(f"unsupported record type {type(record).__name__}")

    def drain(self, records: queue.Queue) -> int:
        """
        Consume every record currently waiting on the queue

        Returns:
            int: number of records consumed
        """
        count = 0
        while True:
            try:
                record = records.get_nowait()
            except queue.Empty:
                return count
            self.add_record(record)
            count += 1

    # ------------------------------------------------------------------
    # Calibration
    # ------------------------------------------------------------------

    @log_exceptions
    def calibrate(self, field_strength: float, include_mag: bool = True) -> CalibrationModel:
        """
        Compute a new CalibrationModel from every stored sample

        Args:
            field_strength: reference magnitude F the magnetometer data is
                mapped onto (1.0 when only direction matters)
            include_mag: fit the magnetometer; when False the soft iron
                transform is the identity and the hard iron bias is zero

        Returns:
            CalibrationModel: also kept as self.model

        Raises:
            CalibrationError: any subclass; self.model is left unchanged
        """
        gyro_offset = self.inertial.gyro_offset(self.store.gyro)
        acc_offset, acc_scale = self.inertial.accel_offset_scale(self.store.accel)

        mag_result = None
        soft_iron = np.eye(3)
        hard_iron_bias = np.zeros(3)
        if include_mag:
            mag_result = self.magnetometer.calibrate(self.store.mag, field_strength)
            soft_iron = mag_result.soft_iron
            hard_iron_bias = mag_result.hard_iron_bias

        model = CalibrationModel(
            gyro_offset=gyro_offset,
            acc_offset=acc_offset,
            acc_scale=acc_scale,
            soft_iron=soft_iron,
            hard_iron_bias=hard_iron_bias,
        )

        self.model = model
        self.mag_result = mag_result
        gyro_count, accel_count, mag_count = self.store.counts()
        logger.info("calibrated from %d gyro, %d accel, %d mag samples",
                    gyro_count, accel_count, mag_count if include_mag else 0)
        return model

    def calibrated_gyro(self) -> np.ndarray:
        if self.model is None:
            return np.zeros((0, 3))
        return apply_gyro_calibration(self.store.gyro, self.model)

    def calibrated_accel(self) -> np.ndarray:
        if self.model is None:
            return np.zeros((0, 3))
        return apply_accel_calibration(self.store.accel, self.model)

    def calibrated_mag(self) -> np.ndarray:
        if self.model is None:
            return np.zeros((0, 3))
        return apply_mag_calibration(self.store.mag, self.model)

    def quality_report(self) -> QualityReport:
        return self.quality.report()

    # ------------------------------------------------------------------
    # Housekeeping
    # ------------------------------------------------------------------

    def clear_gyro(self):
        self.store.clear_gyro()

    def clear_accel(self):
        self.store.clear_accel()

    def clear_mag(self):
        self.store.clear_mag()
        self.quality.reset()

    def samples(self) -> SampleSet:
        return SampleSet(gyro=self.store.gyro, accel=self.store.accel, mag=self.store.mag)

    @log_exceptions
    def save(self, path):
        """Write the raw samples (not the model) to a JSON file"""
        save_samples(path, self.samples())

    @log_exceptions
    def load(self, path):
        """
        Replace every stored sample with the file's contents

        The standstill baselines are reset as well; they tracked whatever
        stream was feeding the session before.
        """
        samples = load_samples(path)

        self.store.clear_gyro()
        self.store.clear_accel()
        self.store.clear_mag()
        self.store.reset_filters()
        self.quality.reset()

        for sample in samples.gyro:
            self.store.add_gyro(sample)
        for sample in samples.accel:
            self.store.add_accel(sample)
        for sample in samples.mag:
            self.store.add_mag(sample)
            self.quality.update(sample)
