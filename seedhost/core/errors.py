"""
Error hierarchy: every build-time failure derives from SeedhostError.

Each module defines the specific exception it raises next to the code
that raises it. The use cases catch SeedhostError and the CLI exits 1.
"""

from __future__ import annotations


class SeedhostError(Exception):
    """Base class for all fatal build-time errors."""
