"""
Chat Services

WhatsApp command parsing and handling.
"""

from functools import lru_cache

from orderdesk.core.config import get_settings
from orderdesk.services.chat.handler import ChatCommandHandler
from orderdesk.services.chat.interpreter import HELP_TEXT, parse_command
from orderdesk.services.ordering import get_fulfillment_service
from orderdesk.services.store import get_order_store


@lru_cache()
def get_chat_handler() -> ChatCommandHandler:
    """Get the chat handler bound to the configured store and orchestrator."""
    settings = get_settings()
    return ChatCommandHandler(
        store=get_order_store(),
        fulfillment=get_fulfillment_service(),
        country_code=settings.default_country_code,
        currency_symbol=settings.currency_symbol,
    )


def reset_chat_handler() -> None:
    get_chat_handler.cache_clear()


__all__ = [
    "get_chat_handler",
    "reset_chat_handler",
    "ChatCommandHandler",
    "HELP_TEXT",
    "parse_command",
]
