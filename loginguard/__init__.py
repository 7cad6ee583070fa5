"""loginguard - marketplace login service with failed-attempt lockout."""

__version__ = "0.1.0"
