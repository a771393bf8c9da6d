"""
Dramatiq broker for the points indexer.

Actor modules import `broker` from here so the Redis broker is
registered before any actor is declared.
"""

import dramatiq
from dramatiq.brokers.redis import RedisBroker
from dramatiq.middleware import (
    AgeLimit,
    CurrentMessage,
    Retries,
    ShutdownNotifications,
    TimeLimit,
)
from loguru import logger

from tracker.config.constants import (
    DRAMATIQ_MAX_BACKOFF,
    DRAMATIQ_MAX_RETRIES,
    DRAMATIQ_MIN_BACKOFF,
    DRAMATIQ_NAMESPACE,
)
from tracker.config.settings import settings


def create_broker() -> RedisBroker:
    """
    Build the Redis broker from settings.

    The middleware list replaces dramatiq's defaults: indexing runs are
    never chained, so Callbacks and Pipelines are left out.
    """
    return RedisBroker(
        host=settings.redis_host,
        port=settings.redis_port,
        password=settings.redis_password or None,
        db=settings.redis_db,
        namespace=DRAMATIQ_NAMESPACE,
        middleware=[
            AgeLimit(),
            TimeLimit(),
            # A batch in flight finishes its commit before the worker exits
            ShutdownNotifications(),
            CurrentMessage(),
            Retries(
                max_retries=DRAMATIQ_MAX_RETRIES,
                min_backoff=DRAMATIQ_MIN_BACKOFF,
                max_backoff=DRAMATIQ_MAX_BACKOFF,
            ),
        ],
    )


broker = create_broker()
dramatiq.set_broker(broker)

logger.info(
    f"[Broker] Redis broker ready: "
    f"redis://{settings.redis_host}:{settings.redis_port}/{settings.redis_db} "
    f"(namespace={DRAMATIQ_NAMESPACE})"
)
