"""iconvault -- icon asset pipeline for the dashboard."""

__version__ = "1.0.0"
