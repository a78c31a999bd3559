"""Domain objects for the Titanium CLI."""
