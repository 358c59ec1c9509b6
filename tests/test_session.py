"""
End-to-end tests for CalibrationSession
"""

import queue

import numpy as np
import pytest

from imucal.calibration.errors import InsufficientDataError, DegenerateGeometryError
from imucal.calibration.session import CalibrationSession
from imucal.data.sensor_data import ImuData, MagData
from imucal.utils.constants import G0

GYRO_BIAS = np.array([0.012, -0.004, 0.0075])


def imu_records(accel_samples, gyro_bias=GYRO_BIAS):
    noise = np.linspace(-1e-4, 1e-4, len(accel_samples))
    return [
        ImuData(linear_acceleration=a, angular_velocity=gyro_bias + [n, -n, n])
        for a, n in zip(accel_samples, noise)
    ]


@pytest.fixture
def session():
    s = CalibrationSession()
    s.collect_accel = True
    s.collect_mag = True
    return s


@pytest.fixture
def loaded_session(session, make_accel_samples, field_ellipsoid):
    accel = make_accel_samples(scale=(1.02, 0.97, 1.01), bias=(0.15, -0.3, 0.08))
    for record in imu_records(accel):
        session.add_record(record)
    for p in field_ellipsoid.points:
        session.add_record(MagData(field=p))
    return session


class TestCalibrate:

    def test_end_to_end(self, loaded_session, field_ellipsoid):
        model = loaded_session.calibrate(field_strength=50.0)

        np.testing.assert_allclose(model.gyro_offset, GYRO_BIAS, atol=1e-12)
        np.testing.assert_allclose(model.acc_offset, [0.15, -0.3, 0.08], atol=1e-9)
        np.testing.assert_allclose(model.acc_scale, [1.02, 0.97, 1.01], rtol=1e-9)
        np.testing.assert_allclose(model.hard_iron_bias, field_ellipsoid.center, atol=1e-4)

        mag = loaded_session.calibrated_mag()
        np.testing.assert_allclose(np.linalg.norm(mag, axis=1), 50.0, rtol=1e-4)
        assert loaded_session.model is model
        assert loaded_session.mag_result.field_strength == 50.0

    def test_calibrated_accel_lobes(self, loaded_session):
        loaded_session.calibrate(field_strength=1.0)
        accel = loaded_session.calibrated_accel()
        for axis in range(3):
            column = accel[:, axis]
            np.testing.assert_allclose(column[column > 0.75 * G0].mean(), G0, rtol=1e-9)
            np.testing.assert_allclose(column[column < -0.75 * G0].mean(), -G0, rtol=1e-9)

    def test_calibrated_gyro_centered(self, loaded_session):
        loaded_session.calibrate(field_strength=1.0)
        gyro = loaded_session.calibrated_gyro()
        np.testing.assert_allclose(gyro.mean(axis=0), 0.0, atol=1e-12)

    def test_ideal_sensor_identity(self, session, accel_lobes, unit_ellipsoid):
        # already calibrated sensors: zero offsets and unit scale
        for record in imu_records(accel_lobes, gyro_bias=np.zeros(3)):
            session.add_record(record)
        for p in unit_ellipsoid.points:
            session.add_record(MagData(field=p))
        model = session.calibrate(field_strength=1.0)
        np.testing.assert_allclose(model.gyro_offset, 0.0, atol=1e-12)
        np.testing.assert_allclose(model.acc_offset, 0.0, atol=1e-12)
        np.testing.assert_allclose(model.acc_scale, 1.0, rtol=1e-12)

    def test_without_mag(self, session, accel_lobes):
        for record in imu_records(accel_lobes):
            session.add_record(record)
        model = session.calibrate(field_strength=1.0, include_mag=False)
        np.testing.assert_array_equal(model.soft_iron, np.eye(3))
        np.testing.assert_array_equal(model.hard_iron_bias, np.zeros(3))
        assert session.mag_result is None

    def test_recalibration_keeps_old_snapshot(self, loaded_session):
        first = loaded_session.calibrate(field_strength=1.0)
        first_dict = first.to_dict()
        loaded_session.clear_gyro()
        loaded_session.store.add_gyro([1.0, 1.0, 1.0])
        second = loaded_session.calibrate(field_strength=1.0)

        assert second is not first
        assert first.to_dict() == first_dict
        np.testing.assert_array_equal(second.gyro_offset, [1.0, 1.0, 1.0])

    def test_failure_leaves_model(self, loaded_session):
        model = loaded_session.calibrate(field_strength=1.0)
        result = loaded_session.mag_result
        loaded_session.clear_mag()
        with pytest.raises(InsufficientDataError) as excinfo:
            loaded_session.calibrate(field_strength=1.0)
        assert excinfo.value.sensor == "mag"
        assert loaded_session.model is model
        assert loaded_session.mag_result is result

    def test_failure_without_prior_model(self, session):
        with pytest.raises(InsufficientDataError):
            session.calibrate(field_strength=1.0)
        assert session.model is None

    def test_flat_mag_data(self, session, accel_lobes, sphere_points):
        for record in imu_records(accel_lobes):
            session.add_record(record)
        flat = sphere_points(100) * [30.0, 30.0, 0.0]
        for p in flat:
            session.add_record(MagData(field=p))
        with pytest.raises(DegenerateGeometryError):
            session.calibrate(field_strength=1.0)

    def test_calibrated_empty_before_model(self, session):
        session.store.add_mag([1.0, 2.0, 3.0])
        assert session.calibrated_gyro().shape == (0, 3)
        assert session.calibrated_accel().shape == (0, 3)
        assert session.calibrated_mag().shape == (0, 3)


class TestIngestion:

    def test_default_switches(self):
        s = CalibrationSession()
        assert s.collect_gyro
        assert not s.collect_accel
        assert not s.collect_mag
        assert not s.filter_standstill

    def test_switches_route_records(self):
        s = CalibrationSession()
        s.add_record(ImuData(linear_acceleration=[0.0, 0.0, G0], angular_velocity=[0.0, 0.0, 0.0]))
        s.add_record(MagData(field=[1.0, 0.0, 0.0]))
        assert s.store.counts() == (1, 0, 0)
        assert s.quality.count == 0

        s.collect_gyro = False
        s.collect_accel = True
        s.collect_mag = True
        s.add_record(ImuData(linear_acceleration=[0.0, 0.0, G0], angular_velocity=[0.0, 0.0, 0.0]))
        s.add_record(MagData(field=[1.0, 0.0, 0.0]))
        assert s.store.counts() == (1, 1, 1)
        assert s.quality.count == 1

    def test_standstill_filtering(self, session):
        session.filter_standstill = True
        record = ImuData(linear_acceleration=[0.0, 0.0, G0], angular_velocity=[0.0, 0.0, 0.0])
        for _ in range(200):
            session.add_imu(record)
        gyro, accel, _ = session.store.counts()
        assert gyro == 200
        assert accel == 66

    def test_unsupported_record(self, session):
        with pytest.raises(TypeError):
            session.add_record((1.0, 2.0, 3.0))

    def test_drain(self, session):
        records = queue.Queue()
        for i in range(5):
            records.put(MagData(field=[float(i), 1.0, 0.0]))
        records.put(ImuData(linear_acceleration=[0.0, 0.0, G0], angular_velocity=[0.0, 0.0, 0.0]))

        assert session.drain(records) == 6
        assert records.empty()
        assert session.store.counts() == (1, 1, 5)
        assert session.drain(records) == 0

    def test_mag_updates_quality(self, session, sphere_points):
        assert session.quality_report().gaps == 100.0
        for p in sphere_points(500) * 45.0:
            session.add_mag(MagData(field=p))
        report = session.quality_report()
        assert report.gaps < 15.0
        assert report.variance < 1e-6
        assert report.acceptable

    def test_clear_mag_resets_quality(self, session):
        session.add_mag(MagData(field=[0.0, 0.0, 40.0]))
        session.clear_mag()
        assert session.store.counts() == (0, 0, 0)
        assert session.quality.count == 0
        assert session.quality_report().gaps == 100.0

    def test_samples_snapshot(self, loaded_session, field_ellipsoid):
        samples = loaded_session.samples()
        assert samples.gyro.shape == (120, 3)
        assert samples.accel.shape == (120, 3)
        np.testing.assert_array_equal(samples.mag, field_ellipsoid.points)
