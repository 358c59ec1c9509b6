"""
Constants for imucal

All thresholds, filter coefficients and tunables used by the calibration
and quality-scoring code live here.
"""

# Gravity and accelerometer lobe detection
G0 = 9.80665  # standard gravity (m/s^2)
G0_THRESHOLD_RATIO = 0.75  # fraction of G0 a component must exceed to join a lobe

# Standstill filters (exponential moving average gate)
GYRO_STILL_ALPHA = 0.98
GYRO_STILL_THRESHOLD = 1e-3  # rad/s
ACCEL_STILL_ALPHA = 0.95
ACCEL_STILL_THRESHOLD = 1e-2  # m/s^2

# Ellipsoid fit
MIN_MAG_SAMPLES = 10  # a general quadric has 10 coefficients
SQRTM_ITERATIONS = 10  # Babylonian iterations for the matrix square root
SINGULAR_CONDITION_LIMIT = 1e12  # condition number treated as "no inverse"
DEGENERATE_GEOMETRY_RATIO = 1e-6  # smallest / largest spread of the point cloud
MAX_FIT_ERROR = 10.0  # std / mean of calibrated magnitudes (%) above which a fit is rejected

# Sphere regions (quality.c layout, 100 regions of equal area)
REGION_COUNT = 100
POLAR_CAP_LATITUDE = 1.37046  # 78.52 degrees
TEMPERATE_LATITUDE = 0.74776  # 42.84 degrees
TEMPERATE_REGIONS = 15
TROPIC_REGIONS = 34
TEMPERATE_IDEAL_LATITUDE = 1.05911  # centre of the temperate band
TROPIC_IDEAL_LATITUDE = 0.37388  # centre of the tropic band

# Per-region penalties for the surface gap error, indexed by sample count
GAP_PENALTIES = (1.0, 0.2, 0.01)

# Returned when no data is available to score
EMPTY_QUALITY_ERROR = 100.0

# Quality thresholds (MotionCal "Send Calibration" limits)
QUALITY_GAPS_THRESHOLD = 15.0  # surface coverage (%)
QUALITY_VARIANCE_THRESHOLD = 4.5  # magnitude consistency (%)
QUALITY_WOBBLE_THRESHOLD = 4.0  # sphericity (%)

# Serial ingestion
DEFAULT_BAUD_RATE = 115200
BAUD_RATES = [4800, 9600, 19200, 38400, 57600, 115200, 230400, 460800, 921600]
SERIAL_TIMEOUT = 0.1  # seconds
MAX_LINE_LENGTH = 256
