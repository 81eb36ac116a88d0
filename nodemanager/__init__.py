"""Control-plane API for a home server node."""

__version__ = "0.1.0"
