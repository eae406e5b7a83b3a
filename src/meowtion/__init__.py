"""Meowtion Sensor: identify known campus cats from photos."""

__version__ = "0.1.0"
