"""Contains the logger used by objcons-jax modules.

Messages use the standard library ``logging`` module:

* ``INFO``: model construction (dimensions and cache bounds).
* ``DEBUG``: cache compaction.

Nothing is logged per evaluation. No handler is installed; calling
applications configure ``objcons_jax.logger.objcons_logger``, e.g.::

    >>> import logging
    >>> logging.basicConfig(
    ...     level=logging.DEBUG,
    ...     format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    ... )
"""

import logging

logger_name = "objcons_jax"
objcons_logger = logging.getLogger(logger_name)
