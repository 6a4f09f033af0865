"""Hotel booking backend: availability, pricing and booking submission."""

__version__ = "0.1.0"
