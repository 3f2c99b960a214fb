"""
Probes used by /utils/liveness/ and /utils/health-check/.

Both return (ok, failures). Liveness never touches the database; readiness
looks at the shared SQL Server pool, if one has been created.
"""

import logging

from mssql_app.core.pool import get_pool_manager

logger = logging.getLogger(__name__)

POOL_CHECK = "mssql_pool"


def check_pool() -> bool:
    """
    The pool is created lazily by the first block call, so "no pool yet"
    counts as healthy. Otherwise the pool must still be connected.
    """
    stats = get_pool_manager().stats()
    if not stats.get("initialized"):
        return True
    return bool(stats.get("connected"))


def liveness_check() -> tuple[bool, list[str]]:
    return (True, [])


def readiness_check() -> tuple[bool, list[str]]:
    failures = [] if check_pool() else [POOL_CHECK]
    if failures:
        logger.warning("Readiness failed: %s", ", ".join(failures))
    return (not failures, failures)
