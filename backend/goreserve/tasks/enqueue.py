"""
Centralized task enqueue helper.

Always use enqueue_task() instead of task.delay() so every producer goes
through the same path. Tasks are addressed by name: the consumer may live
in another code base (notification delivery does).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from .celery_app import celery_app

logger = logging.getLogger(__name__)


def enqueue_task(
    task_name: str,
    args: Optional[Tuple[Any, ...]] = None,
    kwargs: Optional[Dict[str, Any]] = None,
    **options: Any,
) -> Any:
    """
    Enqueue a Celery task by name.

    Args:
        task_name: Fully qualified task name (e.g., "notifications.booking_expired")
        args: Positional arguments for the task
        kwargs: Keyword arguments for the task
        **options: Additional apply_async options (queue, countdown, eta, etc.)

    Returns:
        AsyncResult from Celery
    """
    args = args or ()
    kwargs = kwargs or {}
    logger.debug(f"Enqueueing task {task_name}", extra={"task_name": task_name})
    return celery_app.send_task(task_name, args=args, kwargs=kwargs, **options)
