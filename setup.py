#!/usr/bin/env python3
"""Setup script for the Azure DevOps process migrator.
"""

from setuptools import find_packages, setup

# Read requirements from requirements.txt file
with open("requirements.txt") as f:
    requirements = f.read().splitlines()

# Remove any comments or blank lines from requirements
requirements = [line for line in requirements if line and not line.startswith("#")]

setup(
    name="process-migrator",
    version="1.0.0",
    description="Export, validate and import Azure DevOps inherited work item processes",
    packages=find_packages(include=["process_migrator", "process_migrator.*"]),
    include_package_data=True,
    python_requires=">=3.10,<4.0",
    install_requires=requirements,
    extras_require={
        "test": ["pytest>=7.4"],
    },
    license="MIT",  # SPDX license identifier
    entry_points={
        "console_scripts": [
            "process-migrator=process_migrator.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: System Administrators",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
    ],
)
