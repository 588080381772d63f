"""Base Trust Layer oracle: scores contracts and writes audit results on-chain."""

__version__ = "0.1.0"
