# backend/goreserve/tasks/expiration_tasks.py
"""
Periodic expiration of unpaid reservations.

Scheduled by Celery Beat (see beat_schedule.py). A run that fails as a
whole is retried; failures of individual reservations are reported in the
result and picked up again by the next run.
"""

import logging
from typing import Any, Dict, Optional

from goreserve.database import get_db_session
from goreserve.services.expiration_sweeper import ExpirationSweeper
from goreserve.tasks.celery_app import BaseTask, typed_task

logger = logging.getLogger(__name__)


@typed_task(
    base=BaseTask,
    name="goreserve.tasks.expiration_tasks.sweep_expired_reservations",
    bind=True,
    max_retries=2,
    default_retry_delay=60,
)
def sweep_expired_reservations(
    self: BaseTask,
    expiration_hours: Optional[int] = None,
    notify: bool = True,
    dry_run: bool = False,
) -> Dict[str, Any]:
    """
    Cancel pending reservations that were not paid in time.

    Returns:
        The sweep report payload
    """
    try:
        with get_db_session() as db:
            report = ExpirationSweeper(db).sweep(
                expiration_hours=expiration_hours, dry_run=dry_run, notify=notify
            )
    except Exception as exc:
        logger.error(f"Expiration sweep failed: {exc}", exc_info=True)
        raise self.retry(exc=exc)

    if report.has_failures:
        logger.warning(
            f"Expiration sweep finished with {report.failed_count} failed reservations",
            extra={"failed_refs": list(report.failed_refs)},
        )
    return report.to_payload()
