"""
Detection intake: scheduled ingestion of camera detection files.

This package watches an intake directory, maps each delimited file to a
field schema by filename, persists valid rows to a relational store and
quarantines failing files into categorized error directories.
"""

from importlib.metadata import version

__version__ = version("detection-intake")

__all__ = ["__version__"]
