"""Quote engine: shot allocation and budget calculation for film quotes."""

__version__ = "0.1.0"
