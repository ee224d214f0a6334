"""SafeQR admin backend: account suspensions, verified links, reports and model metadata."""

__version__ = "0.1.0"
