"""Human-in-the-loop chat agent service."""

__version__ = "0.1.0"
