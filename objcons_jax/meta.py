"""Problem metadata and evaluation counters.

``NLPModelMeta`` describes the problem seen by a solver:

    minimize    f(x)
    subject to  lcon <= h(x) <= ucon
                lvar <= x <= uvar

Constraints produced by a joint function are equality residuals, so
``lcon`` and ``ucon`` are both zero.
"""

from typing import Optional

import equinox as eqx
import jax.numpy as jnp
import numpy as np
from jaxtyping import Array, Float

from objcons_jax.errors import DimensionError


class NLPModelMeta(eqx.Module):
    """Dimensions, bounds and starting point of a problem.

    Attributes:
        nvar: Number of variables.
        ncon: Number of (equality) constraints.
        x0: Starting point.
        lvar: Lower variable bounds, ``-inf`` where unbounded.
        uvar: Upper variable bounds, ``inf`` where unbounded.
        lcon: Lower constraint bounds (zeros).
        ucon: Upper constraint bounds (zeros).
    """

    nvar: int = eqx.field(static=True)
    ncon: int = eqx.field(static=True)
    x0: Float[Array, " nvar"]
    lvar: Float[Array, " nvar"]
    uvar: Float[Array, " nvar"]
    lcon: Float[Array, " ncon"]
    ucon: Float[Array, " ncon"]

    def __init__(self, x0, ncon: int, lvar=None, uvar=None):
        self.x0 = jnp.array(np.asarray(x0, dtype=np.float64))
        self.nvar = int(self.x0.shape[0])
        self.ncon = int(ncon)
        if lvar is None:
            lvar = jnp.full((self.nvar,), -jnp.inf)
        if uvar is None:
            uvar = jnp.full((self.nvar,), jnp.inf)
        self.lvar = jnp.array(np.asarray(lvar, dtype=np.float64))
        self.uvar = jnp.array(np.asarray(uvar, dtype=np.float64))
        self.lcon = jnp.zeros((self.ncon,))
        self.ucon = jnp.zeros((self.ncon,))

    def __check_init__(self):
        """Check that the bounds match the starting point."""
        if self.lvar.shape != (self.nvar,):
            raise DimensionError("lvar", self.nvar, _length(self.lvar))
        if self.uvar.shape != (self.nvar,):
            raise DimensionError("uvar", self.nvar, _length(self.uvar))

    @property
    def has_bounds(self) -> bool:
        """Whether any variable has a finite bound."""
        return bool(
            np.any(np.isfinite(np.asarray(self.lvar)))
            or np.any(np.isfinite(np.asarray(self.uvar)))
        )

    @property
    def equality_constraints(self) -> tuple[int, ...]:
        """Indices of the equality constraints (all of them)."""
        return tuple(range(self.ncon))


def _length(a):
    return a.shape[0] if a.ndim == 1 else a.shape


class Counters:
    """Number of calls to each solver-facing operation.

    A counter is incremented once per call, after the inputs have been
    validated, whether or not the result came from a cache.
    """

    _fields = (
        "neval_obj",
        "neval_cons",
        "neval_grad",
        "neval_jprod",
        "neval_jtprod",
        "neval_hprod",
    )

    def __init__(self):
        self.reset()

    def reset(self) -> None:
        for field in self._fields:
            setattr(self, field, 0)

    def sum_counters(self, fields: Optional[tuple[str, ...]] = None) -> int:
        """Sum of the given counters (all of them by default)."""
        return sum(getattr(self, field) for field in (fields or self._fields))

    def as_dict(self) -> dict[str, int]:
        return {field: getattr(self, field) for field in self._fields}

    def __repr__(self):
        inner = ", ".join(f"{k}={v}" for k, v in self.as_dict().items())
        return f"Counters({inner})"
