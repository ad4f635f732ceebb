"""Modular pieces for the programmatic OpenAPI builder.

This package holds constants and helpers that the main builder imports to
keep the spec generation code readable and maintainable as the API grows.
"""

__all__ = [
    "constants",
]
