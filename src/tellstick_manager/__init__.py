"""Tellstick device manager: REST control of Telldus radio devices."""

__version__ = "0.1.0"
