"""
Jack SDK Command-Line Interface
===============================

This package provides the command-line tools for the Jack SDK:

- **jackc**: Jack to VM compiler

Each tool is implemented as a Click-based CLI application.
"""

__all__ = ["jackc"]
