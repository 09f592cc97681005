"""Scale bridge gateway: TCP weighing-scale link fanned out to WebSocket clients."""

__all__ = ["__version__"]

__version__ = "1.0.0"
