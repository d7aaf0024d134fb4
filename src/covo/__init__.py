"""COVO: consistency validator for layered enterprise-architecture models."""

__version__ = "0.4.0"
