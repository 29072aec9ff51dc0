import numpy as np

from objcons_jax.errors import DimensionError


def check_vector(x, name: str, n: int) -> np.ndarray:
    """Return ``x`` as a 1-D float64 array of length ``n``.

    Raises:
        DimensionError: If ``x`` is not 1-D or its length is not ``n``.
    """
    x_np = np.asarray(x, dtype=np.float64)
    if x_np.ndim != 1:
        raise DimensionError(name, n, x_np.shape)
    if x_np.shape[0] != n:
        raise DimensionError(name, n, x_np.shape[0])
    return x_np
