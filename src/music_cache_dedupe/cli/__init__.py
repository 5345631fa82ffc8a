"""Command line interface for music cache dedupe."""
