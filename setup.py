"""Setup script for Consensus Agora.

This file is provided for backwards compatibility with older pip versions.
The main package configuration is in pyproject.toml.
"""

from setuptools import setup

# The actual configuration is in pyproject.toml
setup()
