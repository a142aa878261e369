"""Startup X-Ray — VC-style startup analysis backend."""

__version__ = "0.1.0"
