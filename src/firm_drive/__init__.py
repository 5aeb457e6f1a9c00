"""OneDrive document placement service for the firm's case management backend."""

__version__ = "0.1.0"
