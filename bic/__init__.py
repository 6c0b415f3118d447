"""Batch Image Compressor."""

__version__ = "1.0.0"
