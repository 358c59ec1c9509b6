"""
Calibration error taxonomy

Every failure of a calibration or fit is raised as one of these, never
approximated with NaN-filled output.
"""


class CalibrationError(Exception):
    """Base class for calibration failures"""


class InsufficientDataError(CalibrationError):
    """Too few samples for the requested operation"""

    def __init__(self, message, sensor=None, axis=None, lobe=None):
        super().__init__(message)
        self.sensor = sensor
        self.axis = axis
        self.lobe = lobe


class SingularMatrixError(CalibrationError):
    """A required matrix inverse does not exist for the given data"""

    def __init__(self, message, name=None):
        super().__init__(message)
        self.name = name


class DegenerateGeometryError(CalibrationError):
    """The magnetometer point cloud cannot describe an ellipsoid"""
