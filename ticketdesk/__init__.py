"""Support ticketing backend with a centralised access and lifecycle policy core."""

__version__ = "0.1.0"
