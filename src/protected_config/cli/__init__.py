"""Command line interface for protected-config."""
