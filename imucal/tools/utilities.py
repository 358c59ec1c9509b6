from typing import Callable
import functools
import logging


def log_exceptions(func: Callable) -> Callable:
    """
    Log any exception escaping func on the logger of func's module, then re-raise.

    The record carries the traceback and the qualified name of the call, so a
    failed CalibrationSession.calibrate shows up under
    imucal.calibration.session without the caller configuring anything.

    Example:
    >>> class Session:
    ...     @log_exceptions
    ...     def load(self, path):
    ...         ...
    """
    logger = logging.getLogger(func.__module__)

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Exception as e:
            logger.exception("%s failed: %s", func.__qualname__, e)
            raise

    return wrapper
