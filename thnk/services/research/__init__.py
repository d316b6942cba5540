"""Research-source validation and synthesis pipeline."""
