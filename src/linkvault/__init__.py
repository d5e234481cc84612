"""LinkVault - personal link bookmarking service."""

__version__ = "0.1.0"
