"""Domain models, normalization and errors."""
