"""TMS backend: task and project management REST API."""

__version__ = "1.0.0"
