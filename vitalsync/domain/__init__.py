"""Domain models, errors and result types, free of storage concerns."""
