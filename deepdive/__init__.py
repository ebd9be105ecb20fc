"""Deep analysis of fast-growing YouTube Shorts channels."""

__version__ = "0.1.0"
