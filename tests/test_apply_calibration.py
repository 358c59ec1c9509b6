"""
Unit tests for CalibrationModel and the apply functions
"""

import dataclasses
import json
import unittest
import numpy as np

from imucal.calibration.data_structures import CalibrationModel
from imucal.data.apply_calibration import (
    apply_gyro_calibration,
    apply_accel_calibration,
    apply_mag_calibration,
)
from imucal.data.sensor_data import ImuData, MagData


def sample_model():
    return CalibrationModel(
        gyro_offset=[0.01, -0.02, 0.03],
        acc_offset=[0.1, -0.2, 0.05],
        acc_scale=[1.01, 0.99, 1.02],
        soft_iron=[[1.1, 0.05, 0.0],
                   [0.05, 0.9, 0.02],
                   [0.0, 0.02, 1.05]],
        hard_iron_bias=[12.0, -7.5, 20.0],
    )


class TestApplyCalibration(unittest.TestCase):
    """Test the correction formulas"""

    def setUp(self):
        self.model = sample_model()

    def test_gyro(self):
        result = apply_gyro_calibration([0.11, 0.98, -0.97], self.model)
        np.testing.assert_allclose(result, [0.10, 1.00, -1.00])

    def test_accel(self):
        result = apply_accel_calibration([0.0, 0.2, 9.75], self.model)
        np.testing.assert_allclose(result, [0.101, 0.0, 9.8 * 1.02])

    def test_mag(self):
        raw = np.array([13.0, -7.5, 21.0])
        expected = self.model.soft_iron @ (raw - self.model.hard_iron_bias)
        np.testing.assert_allclose(apply_mag_calibration(raw, self.model), expected)

    def test_batch_matches_single(self):
        rng = np.random.default_rng(3)
        raw = rng.normal(size=(25, 3)) * 30.0
        batch = apply_mag_calibration(raw, self.model)
        self.assertEqual(batch.shape, (25, 3))
        for i in range(len(raw)):
            np.testing.assert_allclose(batch[i], apply_mag_calibration(raw[i], self.model))

    def test_identity_model(self):
        model = CalibrationModel()
        raw = np.array([[1.0, 2.0, 3.0], [-4.0, 5.0, -6.0]])
        np.testing.assert_array_equal(model.apply_gyro(raw), raw)
        np.testing.assert_array_equal(model.apply_accel(raw), raw)
        np.testing.assert_array_equal(model.apply_mag(raw), raw)

    def test_model_methods_delegate(self):
        raw = [1.0, 2.0, 3.0]
        np.testing.assert_array_equal(self.model.apply_gyro(raw),
                                      apply_gyro_calibration(raw, self.model))
        np.testing.assert_array_equal(self.model.apply_accel(raw),
                                      apply_accel_calibration(raw, self.model))
        np.testing.assert_array_equal(self.model.apply_mag(raw),
                                      apply_mag_calibration(raw, self.model))

    def test_raw_input_not_modified(self):
        raw = np.array([1.0, 2.0, 3.0])
        self.model.apply_accel(raw)
        self.model.apply_mag(raw)
        np.testing.assert_array_equal(raw, [1.0, 2.0, 3.0])


class TestModelImmutability(unittest.TestCase):
    """Test that a model is a frozen snapshot"""

    def test_fields_read_only(self):
        model = sample_model()
        for name in ("gyro_offset", "acc_offset", "acc_scale", "soft_iron", "hard_iron_bias"):
            with self.subTest(field=name):
                with self.assertRaises(ValueError):
                    getattr(model, name)[0] = 0.0

    def test_attributes_not_assignable(self):
        model = sample_model()
        with self.assertRaises(dataclasses.FrozenInstanceError):
            model.gyro_offset = np.zeros(3)

    def test_input_copied(self):
        offset = np.array([1.0, 2.0, 3.0])
        model = CalibrationModel(gyro_offset=offset)
        offset[0] = 100.0
        np.testing.assert_array_equal(model.gyro_offset, [1.0, 2.0, 3.0])

    def test_defaults(self):
        model = CalibrationModel()
        np.testing.assert_array_equal(model.gyro_offset, np.zeros(3))
        np.testing.assert_array_equal(model.acc_offset, np.zeros(3))
        np.testing.assert_array_equal(model.acc_scale, np.ones(3))
        np.testing.assert_array_equal(model.soft_iron, np.eye(3))
        np.testing.assert_array_equal(model.hard_iron_bias, np.zeros(3))

    def test_bad_shapes(self):
        with self.assertRaises(ValueError):
            CalibrationModel(acc_scale=[1.0, 1.0])
        with self.assertRaises(ValueError):
            CalibrationModel(soft_iron=np.eye(2))

    def test_records_frozen(self):
        imu = ImuData(linear_acceleration=[0.0, 0.0, 9.8], angular_velocity=[0.1, 0.2, 0.3])
        mag = MagData(field=[1.0, 2.0, 3.0])
        with self.assertRaises(dataclasses.FrozenInstanceError):
            mag.field = np.zeros(3)
        with self.assertRaises(ValueError):
            imu.angular_velocity[0] = 1.0
        with self.assertRaises(ValueError):
            MagData(field=[1.0, 2.0])


class TestModelExport(unittest.TestCase):
    """Test dict and JSON export"""

    def test_dict_round_trip(self):
        model = sample_model()
        restored = CalibrationModel.from_dict(model.to_dict())
        for name, value in model.to_dict().items():
            np.testing.assert_array_equal(getattr(restored, name), value)

    def test_dict_holds_plain_floats(self):
        data = sample_model().to_dict()
        self.assertIsInstance(data["gyro_offset"][0], float)
        self.assertIsInstance(data["soft_iron"][1][2], float)
        self.assertEqual(len(data["soft_iron"]), 3)

    def test_json_string(self):
        model = sample_model()
        text = model.as_json_string()
        data = json.loads(text)
        self.assertEqual(set(data), {"gyro_offset", "acc_offset", "acc_scale",
                                     "soft_iron", "hard_iron_bias"})
        self.assertAlmostEqual(data["hard_iron_bias"][1], -7.5)
        self.assertIn("\n  ", text)

    def test_missing_key(self):
        data = sample_model().to_dict()
        del data["acc_scale"]
        with self.assertRaises(ValueError):
            CalibrationModel.from_dict(data)

    def test_non_finite_value(self):
        data = sample_model().to_dict()
        data["soft_iron"][0][0] = float("nan")
        with self.assertRaises(ValueError):
            CalibrationModel.from_dict(data)
        data = sample_model().to_dict()
        data["gyro_offset"][2] = float("inf")
        with self.assertRaises(ValueError):
            CalibrationModel.from_dict(data)


if __name__ == '__main__':
    unittest.main()
