"""Command-line interface for learnboard."""
