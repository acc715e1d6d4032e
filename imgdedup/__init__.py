"""Storage listing, processing settings, progress reporting, hash persistence and result collection for finding duplicate images."""

__version__ = "0.1.0"