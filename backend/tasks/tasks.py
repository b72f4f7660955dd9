# tasks/tasks.py

import logging

from celery import shared_task

from .analytics import AnalyticsStore

logger = logging.getLogger(__name__)


@shared_task(ignore_result=True)
def record_analytics_event(event: str) -> bool:
    """
    Background bookkeeping for the analytics counters.

    Never raises: analytics must not be able to fail the request that
    enqueued it.
    """
    try:
        saved = AnalyticsStore().record_event(event)
    except Exception as e:
        logger.exception(f"Analytics event {event!r} could not be recorded: {str(e)}")
        return False
    if not saved:
        logger.error(f"Analytics event {event!r} could not be persisted.")
    return saved
