"""Import book chapters from a source tree into numbered chapter records."""
