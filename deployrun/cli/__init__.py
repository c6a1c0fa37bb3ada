"""Command line interface for deployrun."""
