"""Console presentation layer for containerguard."""
