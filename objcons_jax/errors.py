"""Exceptions raised by objcons-jax.

Errors raised by the user's joint function, or by JAX while tracing or
differentiating it, are not wrapped: they reach the caller unchanged.
"""


class ObjConsError(Exception):
    """Base class for errors raised by this package."""


class ConstructionError(ObjConsError, ValueError):
    """Invalid arguments when building a model or a cache."""


class DimensionError(ObjConsError, ValueError):
    """An input vector does not have the expected length.

    Attributes:
        name: Name of the offending argument (e.g. ``"x"``).
        expected: Required length.
        actual: Length (or shape) that was passed.
    """

    def __init__(self, name: str, expected: int, actual):
        self.name = name
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"DimensionError: Input {name} should have length {expected} not {actual}"
        )
