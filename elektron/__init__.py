"""Pluggable, power-aware scheduling policies for resource-offer based cluster frameworks."""

__version__ = "0.1.0"