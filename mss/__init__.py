"""Mechanical Shop Service (MSS) authentication backend."""

__version__ = "1.0.0"
