"""Project Operator: keeps tenant projects, their scoped roles and member nodes in sync."""

__version__ = "0.1.0"
