"""Room lobby service for multiplayer games."""

__version__ = "0.1.0"
