"""
Core package init for the rollcall face-matching engine.

Makes the `rollcall` modules importable without requiring an editable install.
"""

__version__ = "0.1.0"

__all__ = [
    "config",
    "enrollment",
    "errors",
    "io_utils",
    "recognition",
    "service",
    "storage",
    "types",
]
