"""ARL Connect gold industry news aggregator."""

__version__ = "1.0.0"
