"""Black-box parameter optimization engines."""

__version__ = "0.1.0"
