"""Command line tools for loginguard."""
