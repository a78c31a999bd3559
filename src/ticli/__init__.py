"""Titanium command-line front end."""

__version__ = "7.0.0"
