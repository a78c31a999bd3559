"""Command-line interface for the Titanium CLI."""
