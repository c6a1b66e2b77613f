"""
Menu Resolver

Maps the loose references shoppers type into catalog items.

A chat user can point at an item by the letter printed next to it in
the menu listing, by its short code, or by its plain name. Rules are
tried in that order and the first hit wins, so a token can never match
two items.
"""

import string
from typing import Optional, Sequence

from orderdesk.core.exceptions import ResolutionError
from orderdesk.domain import MenuItem, RequestedLine, ResolvedLine, Shop, format_money

LETTERS = string.ascii_uppercase


def menu_letter(index: int) -> Optional[str]:
    """0 -> 'A', 25 -> 'Z', anything else -> None."""
    if 0 <= index < len(LETTERS):
        return LETTERS[index]
    return None


def resolve(token: str, available_items: Sequence[MenuItem]) -> Optional[MenuItem]:
    """
    Find the item a token refers to.

    Args:
        token: Letter, short code or display name as typed by the user
        available_items: The shop's available items in listing order

    Returns:
        The matching MenuItem, or None when nothing matches
    """
    token = (token or "").strip()
    if not token:
        return None

    # 1) Single letter -> position in the listing; past the end is a miss
    if len(token) == 1 and token.upper() in LETTERS:
        index = LETTERS.index(token.upper())
        if index < len(available_items):
            return available_items[index]
        return None

    # 2) Short code
    wanted = token.upper()
    for item in available_items:
        if item.code and item.code.strip().upper() == wanted:
            return item

    # 3) Display name
    wanted = token.lower()
    for item in available_items:
        if (item.name or "").strip().lower() == wanted:
            return item

    return None


def resolve_web_lines(
    requested: Sequence[RequestedLine],
    available_items: Sequence[MenuItem],
) -> list[ResolvedLine]:
    """
    Resolve web order lines that reference items by id.

    Every reference is checked before anything is returned, so the
    caller gets either the full list or one ResolutionError naming all
    bad references.
    """
    by_id = {item.id: item for item in available_items}
    resolved = []
    missing = []

    for line in requested:
        item = by_id.get(line.item_id)
        if item is None:
            missing.append(str(line.item_id))
            continue

        variant = None
        if line.variant_code:
            variant = item.find_variant(line.variant_code)
            if variant is None or not variant.available:
                missing.append(f"{line.item_id}:{line.variant_code}")
                continue

        resolved.append(ResolvedLine(item=item, quantity=line.quantity, variant=variant))

    if missing:
        raise ResolutionError(missing, f"Item(s) not available: {', '.join(missing)}")
    return resolved


def format_menu(shop: Shop, items: Sequence[MenuItem], currency_symbol: str = "₹") -> str:
    """Build the lettered menu sent in reply to 'menu <shop>'."""
    lines = [f"📋 Menu for {shop.name}:", ""]
    for index, item in enumerate(items):
        label = menu_letter(index) or item.code or "•"
        lines.append(f"{label}. {item.name} - {format_money(item.price, currency_symbol)}")

    lines.append("")
    lines.append(
        f"To order: order {shop.contact} <letter|code> <qty> [<letter|code> <qty> ...]"
    )
    lines.append(f"Example: order {shop.contact} A 2 B 1")
    return "\n".join(lines)
