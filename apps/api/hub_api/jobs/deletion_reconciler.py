"""Deletion reconciliation job (step two of the two-step user deletion).

- Scan: users WHERE deletion_requested_at IS NOT NULL (oldest first)
- Reconcile: delete the provider credential with the admin client, then
  delete the record only while it is still marked
- A failed credential deletion leaves the record marked; the next pass retries
- Interval: RECONCILE_INTERVAL_SEC (default 60), batch RECONCILE_BATCH_LIMIT (default 50)

Run with ``python -m hub_api.jobs.deletion_reconciler``. Stops gracefully on
SIGTERM / SIGINT.
"""

import logging
import signal
import threading
import time
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hub_api.auth.identity_provider import IdentityProvider, IdentityProviderError, SupabaseIdentityProvider
from hub_api.config.env import (
    get_database_url,
    get_log_level,
    get_reconcile_batch_limit,
    get_reconcile_interval_sec,
)
from hub_api.db.engine import build_engine, build_sessionmaker
from hub_api.db.repo_users import UserRepository
from hub_api.utils import configure_json_logging

logger = logging.getLogger(__name__)

# Global shutdown event for graceful termination
_shutdown_event = threading.Event()


def _signal_handler(signum, frame):
    """Handle shutdown signals (SIGTERM, SIGINT) gracefully."""
    sig_name = signal.Signals(signum).name
    logger.info(f"Received {sig_name} signal, initiating graceful shutdown...")
    _shutdown_event.set()


@dataclass
class ReconcileStats:
    scanned: int = 0
    deleted: int = 0
    failed: int = 0


def reconcile_user(uid: str, db: Session, provider: IdentityProvider) -> bool:
    """Remove one marked account: credential first, then the record.

    Returns:
        True if the record was removed, False if it must be retried (or was unmarked meanwhile)
    """
    try:
        provider.delete_user(uid)
    except IdentityProviderError as e:
        logger.error(
            "reconcile.credential_delete_failed",
            extra={"uid": uid, "provider_code": e.code, "provider_status": e.status, "outcome": "retry"},
        )
        return False

    if not UserRepository(db).delete_marked(uid):
        logger.warning("reconcile.user.not_marked", extra={"uid": uid, "outcome": "skipped"})
        return False

    logger.info("reconcile.user.deleted", extra={"uid": uid, "outcome": "success"})
    return True


def reconcile_once(db: Session, provider: IdentityProvider, limit: int = 50) -> ReconcileStats:
    """One reconciliation pass over at most ``limit`` marked users."""
    stats = ReconcileStats()
    db.expire_all()
    pending = UserRepository(db).list_pending_deletion(limit=limit)
    stats.scanned = len(pending)

    for uid in [user.uid for user in pending]:
        if reconcile_user(uid, db, provider):
            stats.deleted += 1
        else:
            stats.failed += 1

    if pending:
        logger.info(
            f"Reconcile pass: {stats.deleted} deleted, {stats.failed} pending retry",
            extra={"scanned": stats.scanned, "deleted": stats.deleted, "failed": stats.failed},
        )
    return stats


def reconcile_loop(
    db: Session,
    provider: IdentityProvider,
    interval_seconds: int = 60,
    limit_per_scan: int = 50,
    stop_after_one_iteration: bool = False,
) -> None:
    """Run reconciliation passes until shutdown is requested.

    Args:
        db: Database session (owned by this loop)
        provider: Identity provider with admin rights
        interval_seconds: Sleep between passes
        limit_per_scan: Max users per pass
        stop_after_one_iteration: Exit after one pass (tests)
    """
    logger.info(f"Deletion reconciler started (interval={interval_seconds}s, limit={limit_per_scan})")

    iteration = 0
    total_deleted = 0
    while not _shutdown_event.is_set():
        iteration += 1
        started = time.time()
        try:
            stats = reconcile_once(db, provider, limit=limit_per_scan)
            total_deleted += stats.deleted
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Reconcile iteration {iteration} failed: {e}", exc_info=True)

        logger.debug(
            "reconcile.iteration.done",
            extra={"iteration": iteration, "duration_ms": int((time.time() - started) * 1000)},
        )

        if stop_after_one_iteration:
            break

        # Interruptible sleep - returns immediately on signal
        _shutdown_event.wait(interval_seconds)

    logger.info(
        f"Deletion reconciler stopped after {iteration} iterations",
        extra={"total_iterations": iteration, "total_deleted": total_deleted},
    )


def main(provider: Optional[IdentityProvider] = None) -> None:
    configure_json_logging(log_level=get_log_level())
    signal.signal(signal.SIGTERM, _signal_handler)
    signal.signal(signal.SIGINT, _signal_handler)

    engine = build_engine(get_database_url())
    db = build_sessionmaker(engine)()
    try:
        reconcile_loop(
            db,
            provider or SupabaseIdentityProvider(),
            interval_seconds=get_reconcile_interval_sec(),
            limit_per_scan=get_reconcile_batch_limit(),
        )
    finally:
        db.close()
        logger.info("Deletion reconciler shutdown complete")


if __name__ == "__main__":
    main()
