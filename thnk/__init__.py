"""THNK research-source validation and synthesis pipeline."""

__version__ = "0.1.0"
