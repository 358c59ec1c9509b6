"""
Calibration algorithms

- inertial: gyroscope offset, accelerometer offset and scale
- magcal: ellipsoid fit for magnetometer soft iron / hard iron
- quality: sphere coverage metrics for magnetometer data
- session: sample collection plus both calibrators
"""
