"""HTTP API for loginguard."""
