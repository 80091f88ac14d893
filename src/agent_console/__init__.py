"""Session sync and intervention control for a remote browser-automation agent."""

__version__ = "0.1.0"

__all__ = ["__version__"]
