"""Packaged resources (JSON schemas, bundled daemon plugin manifest)."""
