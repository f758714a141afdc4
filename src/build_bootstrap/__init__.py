"""Bootstrap and supervise generated build scripts."""

__version__ = "0.1.0"
