"""usage-pulse: watch Claude usage limits and alert before they run out."""

__version__ = "0.1.0"
