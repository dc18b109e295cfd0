"""Bridge between a chat surface and the interactive Rovo Dev CLI."""

__version__ = "0.1.0"

__all__ = ["__version__"]
