"""
Chat Command Interpreter

Parses a raw WhatsApp message into an intent. Pure: no I/O, no catalog
lookups. Resolution of shop contacts and item tokens happens later in
the handler.

    menu <shopPhone>
    order <shopPhone> <letter|code> <qty> [<letter|code> <qty> ...]
    status <orderId>
"""

import re
from dataclasses import dataclass
from typing import Union

HELP_TEXT = (
    "Welcome. Commands:\n"
    "1) menu <shopPhone>\n"
    "2) order <shopPhone> <letter|code> <qty> [more pairs]\n"
    "3) status <orderId>"
)

_LEADING_INT = re.compile(r"^[+-]?\d+")


@dataclass(frozen=True)
class ShowMenu:
    shop_contact: str


@dataclass(frozen=True)
class OrderPair:
    token: str
    quantity: int


@dataclass(frozen=True)
class PlaceOrder:
    shop_contact: str
    pairs: tuple[OrderPair, ...]


@dataclass(frozen=True)
class QueryStatus:
    order_identifier: str


@dataclass(frozen=True)
class Unknown:
    text: str = ""


Intent = Union[ShowMenu, PlaceOrder, QueryStatus, Unknown]


def parse_quantity(token: str) -> int:
    """Leading integer of the token; anything missing or below 1 becomes 1."""
    match = _LEADING_INT.match(token or "")
    if not match:
        return 1
    return max(1, int(match.group()))


def parse_pairs(tokens: list[str]) -> tuple[OrderPair, ...]:
    """Consume tokens two at a time; a trailing token without quantity gets 1."""
    pairs = []
    for i in range(0, len(tokens), 2):
        item_token = tokens[i].strip()
        quantity = parse_quantity(tokens[i + 1]) if i + 1 < len(tokens) else 1
        pairs.append(OrderPair(token=item_token, quantity=quantity))
    return tuple(pairs)


def parse_command(text: str) -> Intent:
    parts = (text or "").split()
    if not parts:
        return Unknown(text or "")

    verb = parts[0].lower()

    if verb == "menu" and len(parts) >= 2:
        return ShowMenu(shop_contact=parts[1])

    if verb == "order" and len(parts) >= 3:
        return PlaceOrder(shop_contact=parts[1], pairs=parse_pairs(parts[2:]))

    if verb == "status" and len(parts) >= 2:
        return QueryStatus(order_identifier=parts[1])

    return Unknown(text)
