"""
Errors
======

Exception types raised by the simplification pipeline.

Degenerate topology and cancellation are not errors: they are handled
inside the engine and never surface as exceptions.
"""


class MeshSimplifyError(Exception):
    """Base class for all mesh simplification errors."""


class InvalidInputError(MeshSimplifyError, ValueError):
    """
    Raised when input buffers or settings are malformed.

    Examples: empty position buffer, index count not a multiple of 3,
    out-of-range indices, relevance outside [-1, 1].
    """


class ResourceExhaustionError(MeshSimplifyError):
    """Raised when the adjacency structures for a mesh do not fit in memory."""
