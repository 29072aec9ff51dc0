"""Type definitions for objcons-jax.

Array aliases use jaxtyping, and are checked at runtime with beartype where
functions are decorated with ``@jaxtyped(typechecker=beartype)``.
"""

from collections.abc import Callable
from typing import TypeVar

from jaxtyping import Array, Float

# Type aliases for common array shapes
Scalar = Float[Array, ""]
Vector = Float[Array, " n"]

# Joint function: takes the point x and returns [objective, constraints...].
# Constraints are equality residuals, h(x) = 0.
JointFn = Callable[[Vector], Float[Array, " m"]]

# Payload stored in a BoundedEvaluationCache
Payload = TypeVar("Payload")
