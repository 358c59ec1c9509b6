"""
Tests for the log_exceptions decorator
"""

import logging

import pytest

from imucal.calibration.errors import InsufficientDataError
from imucal.calibration.session import CalibrationSession
from imucal.tools import log_exceptions


class Worker:

    @log_exceptions
    def run(self, fail):
        if fail:
            raise RuntimeError("boom")
        return "done"


def test_returns_value_without_logging(caplog):
    with caplog.at_level(logging.ERROR):
        assert Worker().run(False) == "done"
    assert caplog.records == []


def test_logs_and_reraises(caplog):
    with caplog.at_level(logging.ERROR):
        with pytest.raises(RuntimeError, match="boom"):
            Worker().run(True)

    record, = caplog.records
    assert record.name == __name__
    assert record.getMessage() == "Worker.run failed: boom"
    assert record.exc_info is not None


def test_wraps_metadata():
    assert Worker.run.__name__ == "run"
    assert Worker.run.__qualname__ == "Worker.run"


def test_session_failure_logged_on_session_logger(caplog):
    with caplog.at_level(logging.ERROR, logger="imucal.calibration.session"):
        with pytest.raises(InsufficientDataError):
            CalibrationSession().calibrate(field_strength=1.0)

    assert any(r.name == "imucal.calibration.session"
               and r.getMessage().startswith("CalibrationSession.calibrate failed")
               for r in caplog.records)
