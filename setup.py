# File: genostage/setup.py
# Location: genostage/genostage/setup.py
"""
Setup script for genostage.

This file configures how the package is built, installed, and what
dependencies are required.
"""

import os
from setuptools import setup, find_packages

# Load version from version.py without importing the module
version = {}
with open(os.path.join("genostage", "version.py")) as f:
    exec(f.read(), version)

setup(
    name="genostage",
    version=version["__version__"],
    description=(
        "Resolve archived genomic data files, normalize them into staging tables "
        "and annotate mutation files."
    ),
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "pandas",
        "jinja2",
    ],
    extras_require={"test": ["pytest"]},
    entry_points={"console_scripts": ["genostage=genostage.cli:main"]},
    include_package_data=True,
    package_data={"genostage": ["config.json", "templates/*.j2"]},
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX :: Linux",
    ],
)
