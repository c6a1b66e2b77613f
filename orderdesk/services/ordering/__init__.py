"""
Ordering Services

Resolver, aggregator, state machine and the orchestrator that ties them
to the store, the sequence generator and the notification fan-out.
"""

import logging
from functools import lru_cache

from orderdesk.core.config import get_settings
from orderdesk.services.notifications import get_chat_transport
from orderdesk.services.notifications.fanout import NotificationFanout
from orderdesk.services.ordering.fulfillment import FulfillmentService
from orderdesk.services.realtime import get_realtime_channel
from orderdesk.services.sequence import SequenceGenerator
from orderdesk.services.store import get_order_store

logger = logging.getLogger(__name__)


@lru_cache()
def get_fulfillment_service() -> FulfillmentService:
    """Wire the orchestrator from the configured collaborators."""
    settings = get_settings()
    store = get_order_store()

    return FulfillmentService(
        store=store,
        sequence=SequenceGenerator(
            store,
            counter_name=settings.order_counter_name,
            attempts=settings.counter_retry_attempts,
        ),
        fanout=NotificationFanout(
            channel=get_realtime_channel(),
            transport=get_chat_transport(),
            timeout=settings.notification_timeout_seconds,
            currency_symbol=settings.currency_symbol,
        ),
        country_code=settings.default_country_code,
    )


def reset_fulfillment_service() -> None:
    """Clear the cached orchestrator."""
    get_fulfillment_service.cache_clear()


__all__ = [
    "get_fulfillment_service",
    "reset_fulfillment_service",
    "FulfillmentService",
]
