"""Build-and-release orchestrator for multi-target native binaries."""

__version__ = "0.1.0"
