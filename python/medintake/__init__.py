"""Medintake - medical document intake and analysis backend."""

__version__ = "0.1.0"
