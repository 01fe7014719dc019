#!/usr/bin/env python3
"""dockdeploy CLI - Setup"""

from setuptools import setup, find_packages

with open("requirements.txt") as f:
    requirements = [line for line in f.read().splitlines() if line.strip()]

setup(
    name="dockdeploy",
    version="1.0.0",
    description="Deploy a containerized application to a remote host over SSH",
    author="dockdeploy Team",
    packages=find_packages(include=["dockdeploy", "dockdeploy.*"]),
    package_data={"dockdeploy": ["templates/*.j2"]},
    install_requires=requirements,
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "dockdeploy=dockdeploy.main:main",
        ],
    },
    python_requires=">=3.9",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
