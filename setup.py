"""
imucal - IMU Calibration

Gyroscope/accelerometer offset and scale estimation, magnetometer ellipsoid
fitting and sphere coverage quality metrics.
"""

import os

from setuptools import setup, find_packages

long_description = ""
if os.path.exists("README.md"):
    with open("README.md", "r", encoding="utf-8") as fh:
        long_description = fh.read()

setup(
    name="imucal",
    version="1.0.0",
    description="IMU calibration: gyro/accel offsets, magnetometer soft and hard iron",
    long_description=long_description,
    long_description_content_type="text/markdown",
    license="MIT",

    packages=find_packages(exclude=["tests", "tests.*"]),

    install_requires=[
        "numpy>=1.21.0",
        "scipy>=1.7.0",
        "pyserial>=3.5",
    ],

    extras_require={
        "dev": [
            "pytest>=7.0",
            "pytest-cov",
        ],
    },

    entry_points={
        "console_scripts": [
            "imucal=imucal.__main__:main",
        ],
    },

    python_requires=">=3.8",

    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Scientific/Engineering",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: OS Independent",
    ],
)
