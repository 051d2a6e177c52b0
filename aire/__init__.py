"""aire: Air Quality Index and alert rules core."""

__version__ = "0.1.0"
