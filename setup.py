#!/usr/bin/env python
"""Setup script for Handtrack SDK - backward compatibility wrapper."""

import warnings
from setuptools import setup

warnings.warn(
    "setup.py is kept for legacy tooling only. Configuration lives in "
    "pyproject.toml; use 'pip install .' or 'pip install -e .'.",
    DeprecationWarning,
    stacklevel=2
)

if __name__ == "__main__":
    setup()
