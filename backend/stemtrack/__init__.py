"""StemTrack: flower box inventory and production-line tracking."""

__version__ = "0.1.0"
