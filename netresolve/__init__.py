"""Entity resolution and traffic aggregation for the wireless dashboard."""

__version__ = "0.1.0"
