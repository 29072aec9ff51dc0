"""objcons-jax: nonlinear programming models from a single joint function.

This package turns one JAX function returning ``[objective, constraints...]``
into the operations required by nonlinear optimisation solvers: values,
gradients, constraint Jacobian products and Hessian-vector products.
Derivatives come from JAX automatic differentiation, and values and
Jacobians are memoised per point in a bounded cache so that repeated queries
at the same iterate evaluate the joint function only once.
"""

from objcons_jax.cache import BoundedEvaluationCache, CacheEntry, cache_key
from objcons_jax.errors import ConstructionError, DimensionError, ObjConsError
from objcons_jax.evaluator import (
    DifferentiableEvaluator,
    HessianPayload,
    JacobianPayload,
    evaluate_at_point,
    evaluate_hessian,
    weighted_hessian_vector_product,
)
from objcons_jax.meta import Counters, NLPModelMeta
from objcons_jax.model import AbstractNLPModel, ObjConsNLPModel, objcons_nlpmodel
from objcons_jax.scipy_interface import scipy_minimize_kwargs
from objcons_jax.types import JointFn

__all__ = [
    # Model
    "objcons_nlpmodel",
    "ObjConsNLPModel",
    "AbstractNLPModel",
    "NLPModelMeta",
    "Counters",
    # Types
    "JointFn",
    # Cache
    "BoundedEvaluationCache",
    "CacheEntry",
    "cache_key",
    # Differentiation
    "DifferentiableEvaluator",
    "JacobianPayload",
    "HessianPayload",
    "evaluate_at_point",
    "evaluate_hessian",
    "weighted_hessian_vector_product",
    # Solver interfaces
    "scipy_minimize_kwargs",
    # Errors
    "ObjConsError",
    "ConstructionError",
    "DimensionError",
]
