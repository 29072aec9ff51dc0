"""Drive an objcons-jax model with ``scipy.optimize.minimize``.

SciPy expects float64 numpy arrays and separate callables for the
objective, its gradient, and each constraint group. They are wired to the
memoised model operations, so a solver that requests the value and the
gradient at the same iterate evaluates the joint function once.

Example:
    >>> from scipy.optimize import minimize
    >>> result = minimize(method="SLSQP", **scipy_minimize_kwargs(model))
"""

from typing import Any

import numpy as np

from objcons_jax.model import AbstractNLPModel


def scipy_minimize_kwargs(model: AbstractNLPModel) -> dict[str, Any]:
    """Build keyword arguments for ``scipy.optimize.minimize``.

    Args:
        model: The model to optimise.

    Returns:
        Dictionary with ``fun``, ``x0``, ``jac``, ``bounds`` and
        ``constraints``. Bounds are omitted when no variable is bounded;
        constraints are omitted when the model has none.
    """

    def fun(x):
        return float(model.objective(x))

    def jac(x):
        return np.asarray(model.gradient(x), dtype=np.float64)

    kwargs: dict[str, Any] = {
        "fun": fun,
        "x0": np.asarray(model.x0, dtype=np.float64),
        "jac": jac,
    }

    if model.meta.has_bounds:
        lvar = np.asarray(model.lvar, dtype=np.float64)
        uvar = np.asarray(model.uvar, dtype=np.float64)
        kwargs["bounds"] = [
            (None if np.isinf(lo) else float(lo), None if np.isinf(hi) else float(hi))
            for lo, hi in zip(lvar, uvar)
        ]

    if model.ncon > 0:
        def cons_fun(x):
            return np.asarray(model.constraints(x), dtype=np.float64)

        def cons_jac(x):
            return np.asarray(model.constraint_jacobian(x), dtype=np.float64)

        kwargs["constraints"] = [{"type": "eq", "fun": cons_fun, "jac": cons_jac}]

    return kwargs
