"""Account Hub API - roles, services and external authentication gateway."""

__version__ = "0.3.0"
