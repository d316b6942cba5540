"""Domain models for research results."""
