#!/usr/bin/env python3
"""Setup script for parfor package.
"""

from setuptools import find_packages, setup

setup(
    name="parfor",
    version="0.1.0",
    description="Bounded and unbounded parallel-for, fan-out and keyed dispatch with aggregated errors",
    author="parfor developers",
    packages=find_packages(include=["parfor*"]),
    python_requires=">=3.10",
    install_requires=[
        "joblib>=1.4.0",
        "pyyaml>=6.0",
        "psutil>=5.9.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "hypothesis>=6.0.0",
            "black>=23.0.0",
            "ruff>=0.1.0",
            "mypy>=1.5.0",
            "types-PyYAML>=6.0.0",
            "types-psutil>=5.9.0",
        ],
    },
)
