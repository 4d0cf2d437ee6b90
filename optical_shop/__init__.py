"""Optical shop order entry: spectacle order cards and contact-lens orders."""

__version__ = "0.1.0"
