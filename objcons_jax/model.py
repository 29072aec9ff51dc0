"""Nonlinear programming model built from a single joint function.

Consider a problem

    minimize    f(g(x))
    subject to  h(g(x)) = 0

where g is expensive, e.g. a model solution from which both the objective
(moments) and the constraints (equilibrium conditions) are derived. The user
supplies one function returning ``[f, h...]`` and this module exposes it
through the operations a nonlinear solver needs.

Values and first derivatives are computed together on the first query at a
point and memoised in a bounded cache, so asking for the objective, the
constraints, the gradient and Jacobian products at the same ``x`` runs the
joint function once. Objective Hessians live in a second, independent cache.
The weighted Lagrangian Hessian-vector product is always recomputed.

Example:
    >>> import jax.numpy as jnp
    >>> from objcons_jax import objcons_nlpmodel
    >>>
    >>> def joint(x):
    ...     return jnp.array([jnp.sum(x**2), jnp.sum(x) - 1.0])
    >>>
    >>> model = objcons_nlpmodel(joint, x0=jnp.array([2.0, 2.0]))
    >>> model.ncon
    1
"""

import abc

import jax.numpy as jnp
import numpy as np
from jaxtyping import Array, Float

from objcons_jax.cache import BoundedEvaluationCache, cache_key
from objcons_jax.errors import ConstructionError
from objcons_jax.evaluator import (
    DifferentiableEvaluator,
    HessianPayload,
    JacobianPayload,
)
from objcons_jax.logger import objcons_logger
from objcons_jax.meta import Counters, NLPModelMeta
from objcons_jax.types import JointFn, Scalar
from objcons_jax.utils import check_vector


class AbstractNLPModel(abc.ABC):
    """Operations a nonlinear solver requires from a model.

    Subclasses set ``meta`` and ``counters`` and implement the evaluation
    methods. Every method taking ``x`` expects a vector of length ``nvar``.
    """

    meta: NLPModelMeta
    counters: Counters

    @property
    def nvar(self) -> int:
        return self.meta.nvar

    @property
    def ncon(self) -> int:
        return self.meta.ncon

    @property
    def x0(self) -> Float[Array, " nvar"]:
        return self.meta.x0

    @property
    def lvar(self) -> Float[Array, " nvar"]:
        return self.meta.lvar

    @property
    def uvar(self) -> Float[Array, " nvar"]:
        return self.meta.uvar

    @property
    def lcon(self) -> Float[Array, " ncon"]:
        return self.meta.lcon

    @property
    def ucon(self) -> Float[Array, " ncon"]:
        return self.meta.ucon

    def reset_counters(self) -> None:
        self.counters.reset()

    @abc.abstractmethod
    def objective(self, x) -> Scalar:
        """Objective value f(x)."""

    @abc.abstractmethod
    def constraints(self, x) -> Float[Array, " ncon"]:
        """Constraint residuals h(x)."""

    @abc.abstractmethod
    def objective_and_constraints(self, x) -> tuple[Scalar, Float[Array, " ncon"]]:
        """Objective and constraints, from a single evaluation."""

    @abc.abstractmethod
    def gradient(self, x) -> Float[Array, " nvar"]:
        """Objective gradient."""

    @abc.abstractmethod
    def constraint_jacobian(self, x) -> Float[Array, "ncon nvar"]:
        """Dense constraint Jacobian."""

    @abc.abstractmethod
    def constraint_jacobian_vector_product(self, x, v) -> Float[Array, " ncon"]:
        """J(x) @ v, where J is the constraint Jacobian."""

    @abc.abstractmethod
    def constraint_jacobian_transpose_vector_product(
        self, x, v
    ) -> Float[Array, " nvar"]:
        """J(x)^T @ v, where J is the constraint Jacobian."""

    @abc.abstractmethod
    def objective_hessian_vector_product(
        self, x, v, obj_weight: float = 1.0
    ) -> Float[Array, " nvar"]:
        """obj_weight * H_f(x) @ v, ignoring constraint curvature."""

    @abc.abstractmethod
    def weighted_hessian_vector_product(
        self, x, y, v, obj_weight: float = 1.0
    ) -> Float[Array, " nvar"]:
        """H_L(x) @ v for L = obj_weight * f + y^T h."""


class ObjConsNLPModel(AbstractNLPModel):
    """Model whose objective and constraints come from one joint function.

    Use :func:`objcons_nlpmodel` to build one.

    Attributes:
        meta: Dimensions, bounds and starting point.
        counters: Number of calls to each operation.
        evaluator: Differentiation kernels for the joint function.
        jacobian_cache: Values and Jacobians, keyed by point.
        hessian_cache: Objective Hessians, keyed by point.

    Note:
        Instances are not thread-safe. Calls on one model from several
        threads must be serialised by the caller.
    """

    def __init__(
        self,
        joint_fn: JointFn,
        x0,
        lvar=None,
        uvar=None,
        min_cache_size: int = 200,
        max_cache_size: int = 500,
    ):
        self.jacobian_cache: BoundedEvaluationCache[JacobianPayload] = (
            BoundedEvaluationCache(
                min_cache_size, max_cache_size, name="jacobian_cache"
            )
        )
        self.hessian_cache: BoundedEvaluationCache[HessianPayload] = (
            BoundedEvaluationCache(min_cache_size, max_cache_size, name="hessian_cache")
        )

        x0 = np.asarray(x0, dtype=np.float64)
        if x0.ndim != 1:
            raise ConstructionError(
                f"Initial guess should be a vector, got shape {x0.shape}."
            )
        if not np.all(np.isfinite(x0)):
            raise ConstructionError("Initial guess should be finite.")

        # Discover the number of constraints; this evaluation is not cached.
        values = jnp.asarray(joint_fn(jnp.array(x0)))
        if values.ndim != 1 or values.shape[0] < 1:
            raise ConstructionError(
                "Joint function should return a vector [objective, constraints...], "
                f"got shape {values.shape}."
            )
        ncon = values.shape[0] - 1

        self.meta = NLPModelMeta(x0, ncon, lvar=lvar, uvar=uvar)
        self.counters = Counters()
        self.evaluator = DifferentiableEvaluator(
            joint_fn=joint_fn, nvar=self.meta.nvar, ncon=ncon
        )
        objcons_logger.info(
            "Created ObjConsNLPModel with nvar=%d, ncon=%d, cache sizes [%d, %d]",
            self.meta.nvar,
            ncon,
            min_cache_size,
            max_cache_size,
        )

    def _check_x(self, x) -> np.ndarray:
        return check_vector(x, "x", self.nvar)

    def _ensure_jacobian(self, x: np.ndarray) -> JacobianPayload:
        return self.jacobian_cache.ensure(
            cache_key(x), lambda: self.evaluator.evaluate(x)
        )

    def _ensure_hessian(self, x: np.ndarray) -> HessianPayload:
        return self.hessian_cache.ensure(
            cache_key(x), lambda: self.evaluator.evaluate_hessian(x)
        )

    def objective(self, x) -> Scalar:
        x = self._check_x(x)
        self.counters.neval_obj += 1
        return self._ensure_jacobian(x).values[0]

    def constraints(self, x) -> Float[Array, " ncon"]:
        x = self._check_x(x)
        self.counters.neval_cons += 1
        return self._ensure_jacobian(x).values[1:]

    def objective_and_constraints(self, x) -> tuple[Scalar, Float[Array, " ncon"]]:
        x = self._check_x(x)
        self.counters.neval_obj += 1
        self.counters.neval_cons += 1
        values = self._ensure_jacobian(x).values
        return values[0], values[1:]

    def gradient(self, x) -> Float[Array, " nvar"]:
        x = self._check_x(x)
        self.counters.neval_grad += 1
        return self._ensure_jacobian(x).jacobian[0, :]

    def constraint_jacobian(self, x) -> Float[Array, "ncon nvar"]:
        x = self._check_x(x)
        return self._ensure_jacobian(x).jacobian[1:, :]

    def constraint_jacobian_vector_product(self, x, v) -> Float[Array, " ncon"]:
        x = self._check_x(x)
        v = check_vector(v, "v", self.nvar)
        self.counters.neval_jprod += 1
        jacobian = self._ensure_jacobian(x).jacobian[1:, :]
        return jacobian @ jnp.asarray(v, dtype=jacobian.dtype)

    def constraint_jacobian_transpose_vector_product(
        self, x, v
    ) -> Float[Array, " nvar"]:
        x = self._check_x(x)
        v = check_vector(v, "v", self.ncon)
        self.counters.neval_jtprod += 1
        jacobian = self._ensure_jacobian(x).jacobian[1:, :]
        return jacobian.T @ jnp.asarray(v, dtype=jacobian.dtype)

    def objective_hessian_vector_product(
        self, x, v, obj_weight: float = 1.0
    ) -> Float[Array, " nvar"]:
        """obj_weight * H_f(x) @ v, using the cached objective Hessian.

        Constraint curvature is not included; see
        :meth:`weighted_hessian_vector_product` for the Lagrangian.
        """
        x = self._check_x(x)
        v = check_vector(v, "v", self.nvar)
        self.counters.neval_hprod += 1
        hessian = self._ensure_hessian(x).hessian
        return obj_weight * (hessian @ jnp.asarray(v, dtype=hessian.dtype))

    def weighted_hessian_vector_product(
        self, x, y, v, obj_weight: float = 1.0
    ) -> Float[Array, " nvar"]:
        """H_L(x) @ v for L = obj_weight * f + y^T h, recomputed on every call.

        Unlike :meth:`objective_hessian_vector_product` this includes
        constraint curvature and bypasses both caches.
        """
        x = self._check_x(x)
        y = check_vector(y, "y", self.ncon)
        v = check_vector(v, "v", self.nvar)
        self.counters.neval_hprod += 1
        return self.evaluator.weighted_hessian_vector_product(x, y, v, obj_weight)

    def clear_caches(self) -> None:
        """Empty both caches. Their index counters keep increasing."""
        self.jacobian_cache.clear()
        self.hessian_cache.clear()


def objcons_nlpmodel(
    joint_fn: JointFn,
    x0,
    lvar=None,
    uvar=None,
    min_cache_size: int = 200,
    max_cache_size: int = 500,
) -> ObjConsNLPModel:
    """Create a model where ``joint_fn(x)`` returns ``[objective, constraints...]``.

    ``joint_fn`` is evaluated once at ``x0`` to determine the number of
    constraints. That evaluation is not cached.

    Args:
        joint_fn: JAX-differentiable function of a vector of length
            ``len(x0)``, returning a vector of length ``1 + ncon``.
        x0: Starting point, all components finite.
        lvar: Lower variable bounds (default ``-inf``).
        uvar: Upper variable bounds (default ``inf``).
        min_cache_size: Entries kept by a cache after compaction.
        max_cache_size: A cache is compacted when it holds more entries.

    Returns:
        An :class:`ObjConsNLPModel`.

    Raises:
        ConstructionError: If the cache sizes are negative or inverted, or
            ``x0`` is not a finite vector.
        DimensionError: If ``lvar`` or ``uvar`` do not match ``x0``.
    """
    return ObjConsNLPModel(
        joint_fn,
        x0,
        lvar=lvar,
        uvar=uvar,
        min_cache_size=min_cache_size,
        max_cache_size=max_cache_size,
    )
