"""Route group exports."""

from . import health, risk

__all__ = ["health", "risk"]
