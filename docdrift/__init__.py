"""docdrift: detect documentation drift and decide what to do about it."""

__all__ = ["__version__"]

__version__ = "0.1.0"
