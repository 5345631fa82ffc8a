"""Find and remove duplicate songs in a music client's local cache."""

__version__ = "0.1.0"
