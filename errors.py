"""
Typed failures raised by graph loading, the Glauber chain, and the distance evaluator.
"""

from __future__ import annotations


class ColoringError(Exception):
    """
    Base class for every failure raised by this package.
    """


class FormatError(ColoringError, ValueError):
    """
    Malformed adjacency-list text: a non-integer token or a line without tokens.
    """


class OutOfRangeError(ColoringError, IndexError):
    """
    A vertex index outside ``[0, n)`` was queried.
    """


class InvalidInitialStateError(ColoringError, ValueError):
    """
    A seed coloring has the wrong length, a color outside ``[0, k)``, or a monochromatic edge.
    """


class DimensionError(ColoringError, ValueError):
    """
    Array shapes do not line up (non-square cost matrix, colorings of different lengths).
    """


class ParameterError(ColoringError, ValueError):
    """
    A run parameter is outside its legal range.
    """
