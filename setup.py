#!/usr/bin/env python3
"""
Setup script for Bike Trip Wrapped
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

setup(
    name="bike-trip-wrapped",
    version="1.0.0",
    author="Bike Trip Wrapped Team",
    description="Ingestion, pricing and yearly statistics for personal bike-share trip exports",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(where=".", include=["components", "components.*"]),
    package_dir={"": "."},
    py_modules=["run_wrapped_stats"],
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.9",
    install_requires=requirements,
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "bike-wrapped=run_wrapped_stats:main",
        ],
    },
    include_package_data=True,
    package_data={
        "": ["*.json", "*.md", "*.txt"],
    },
)
