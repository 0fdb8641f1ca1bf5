"""PPDB admission ranking and quota allocation."""

__version__ = "0.1.0"
