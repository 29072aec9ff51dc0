"""Automatic differentiation of a joint objective/constraint function.

The joint function maps a point ``x`` (length n) to the vector
``[f(x), h_1(x), ..., h_m(x)]``. This module computes, without any caching:

1. The value vector and its full (1 + m) x n Jacobian, in a single
   forward-mode pass (``jax.jacfwd`` with the value returned as auxiliary
   output, so the joint function is traced once).
2. The n x n Hessian of the objective component f alone, ignoring the
   constraints (forward-over-reverse, ``jax.hessian``).
3. Hessian-vector products of the weighted Lagrangian

       L(x) = obj_weight * f(x) + y^T h(x)

   via forward-over-reverse ``jax.jvp(jax.grad(L))``, which never forms the
   Hessian.

The joint function must be written with JAX primitives and be differentiable
along the path taken at ``x``. Branching on concrete values can silently give
wrong derivatives; this cannot be detected here.
"""

from typing import NamedTuple

import equinox as eqx
import jax
import jax.numpy as jnp
from beartype import beartype
from jaxtyping import Array, Float, jaxtyped

from objcons_jax.types import JointFn
from objcons_jax.utils import check_vector


class JacobianPayload(NamedTuple):
    """Value vector and Jacobian of the joint function at a point.

    Attributes:
        values: ``[f(x), h(x)...]``, length 1 + ncon.
        jacobian: Jacobian of ``values``, shape (1 + ncon, nvar). Row 0 is
            the objective gradient.
    """

    values: Float[Array, " m"]
    jacobian: Float[Array, "m n"]


class HessianPayload(NamedTuple):
    """Hessian of the objective component at a point, shape (nvar, nvar)."""

    hessian: Float[Array, "n n"]


def _call_joint(joint_fn: JointFn, x):
    return jnp.asarray(joint_fn(x))


@jaxtyped(typechecker=beartype)
def evaluate_at_point(joint_fn: JointFn, x: Float[Array, " n"]) -> JacobianPayload:
    """Evaluate ``joint_fn`` and its Jacobian at ``x`` in one forward pass.

    Args:
        joint_fn: Function returning ``[objective, constraints...]``.
        x: Point of evaluation.

    Returns:
        JacobianPayload with the values and the Jacobian.
    """

    def values_with_aux(z):
        values = _call_joint(joint_fn, z)
        return values, values

    jacobian, values = jax.jacfwd(values_with_aux, has_aux=True)(x)
    return JacobianPayload(values=values, jacobian=jacobian)


@jaxtyped(typechecker=beartype)
def evaluate_hessian(joint_fn: JointFn, x: Float[Array, " n"]) -> HessianPayload:
    """Hessian of the objective ``joint_fn(x)[0]``; constraints are ignored."""

    def objective(z):
        return _call_joint(joint_fn, z)[0]

    return HessianPayload(hessian=jax.hessian(objective)(x))


@jaxtyped(typechecker=beartype)
def weighted_hessian_vector_product(
    joint_fn: JointFn,
    x: Float[Array, " n"],
    y: Float[Array, " ncon"],
    v: Float[Array, " n"],
    obj_weight: float,
) -> Float[Array, " n"]:
    """Compute H_L(x) @ v for L(x) = obj_weight * f(x) + y^T h(x).

    Uses forward-over-reverse differentiation, so the cost is a small
    multiple of one gradient evaluation and no n x n matrix is formed.

    Args:
        joint_fn: Function returning ``[objective, constraints...]``.
        x: Point of evaluation.
        y: Constraint multipliers, one per constraint.
        v: Direction.
        obj_weight: Weight of the objective term.

    Returns:
        The Hessian-vector product, length n.
    """

    def lagrangian(z):
        values = _call_joint(joint_fn, z)
        return obj_weight * values[0] + jnp.dot(y, values[1:])

    _, hvp = jax.jvp(jax.grad(lagrangian), (x,), (v,))
    return hvp


class DifferentiableEvaluator(eqx.Module):
    """Bundles the differentiation kernels for one joint function.

    Inputs are checked against ``nvar`` before anything is computed, and
    converted to JAX arrays of the default float dtype.

    Attributes:
        joint_fn: Function returning ``[objective, constraints...]``.
        nvar: Number of variables.
        ncon: Number of constraints.
    """

    joint_fn: JointFn = eqx.field(static=True)
    nvar: int = eqx.field(static=True)
    ncon: int = eqx.field(static=True)

    def evaluate(self, x) -> JacobianPayload:
        x = jnp.array(check_vector(x, "x", self.nvar))
        return evaluate_at_point(self.joint_fn, x)

    def evaluate_hessian(self, x) -> HessianPayload:
        x = jnp.array(check_vector(x, "x", self.nvar))
        return evaluate_hessian(self.joint_fn, x)

    def weighted_hessian_vector_product(
        self, x, y, v, obj_weight: float = 1.0
    ) -> Float[Array, " n"]:
        x = jnp.array(check_vector(x, "x", self.nvar))
        y = jnp.array(check_vector(y, "y", self.ncon))
        v = jnp.array(check_vector(v, "v", self.nvar))
        return weighted_hessian_vector_product(
            self.joint_fn, x, y, v, float(obj_weight)
        )
